"""
Fixed tournament structure: regions, round codes, seed pairings and the
day/region table that maps bracket rounds onto calendar rounds.
"""
import math
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

REGIONS = ["East", "South", "West", "Midwest"]

# Bracket rounds, earliest first
ROUND_CODES = ["R64", "R32", "S16", "E8", "F4", "CHIP"]
REGIONAL_ROUNDS = ["R64", "R32", "S16", "E8"]

GAMES_PER_REGION = {"R64": 8, "R32": 4, "S16": 2, "E8": 1}
NATIONAL_GAMES = {"F4": 2, "CHIP": 1}

# Slot order inside a region: (top seed, bottom seed)
R64_SEED_PAIRINGS: List[Tuple[int, int]] = [
    (1, 16), (8, 9), (5, 12), (4, 13), (6, 11), (3, 14), (7, 10), (2, 15),
]

DEFAULT_F4_PAIRINGS: List[Tuple[str, str]] = [("East", "West"), ("South", "Midwest")]

# Which regions play on which half of a two-day round
DAY_REGIONS = {
    "R64": {"A": ["East", "South"], "B": ["West", "Midwest"]},
    "R32": {"A": ["East", "South"], "B": ["West", "Midwest"]},
    "S16": {"A": ["South", "West"], "B": ["East", "Midwest"]},
    "E8": {"A": ["South", "West"], "B": ["East", "Midwest"]},
}

TOTAL_GAMES = 63
MIN_TEAMS = 64
MIN_ROUNDS = 8
MIN_R64_GAMES = 32

# Placeholder tip-off for shell games: 19:00 UTC plus 2.5h per slot
PLACEHOLDER_TIPOFF_HOUR = 19
PLACEHOLDER_SLOT_SPACING = timedelta(hours=2, minutes=30)


def round_code_from_name(name: str) -> Optional[str]:
    """
    Map a human round name to a bracket round code.

    First Four / play-in rounds and unrecognised names return None.
    """
    n = (name or "").lower()
    if "first four" in n or "play-in" in n or "play in" in n:
        return None
    if "final four" in n or "semifinal" in n:
        return "F4"
    if "championship" in n or "title" in n:
        return "CHIP"
    if "elite" in n:
        return "E8"
    if "sweet" in n or "16" in n:
        return "S16"
    if "32" in n or "second round" in n:
        return "R32"
    if "64" in n or "first round" in n:
        return "R64"
    return None


def infer_half(name: str) -> Optional[str]:
    """Infer which day of a two-day round a name refers to ("A", "B" or None)."""
    n = (name or "").lower()
    if "day 1" in n or "thursday" in n or "saturday" in n:
        return "A"
    if "day 2" in n or "friday" in n or "sunday" in n:
        return "B"
    return None


def build_round_id_map(rounds: Sequence) -> Dict[Tuple[str, Optional[str]], int]:
    """
    Map (round code, region) to the calendar round that hosts it.

    Regional rounds are keyed by region; F4 and CHIP are keyed with region None.
    `rounds` needs `id`, `name` and `date` attributes.
    """
    by_code: Dict[str, list] = {}
    for r in rounds:
        code = round_code_from_name(r.name)
        if code is not None:
            by_code.setdefault(code, []).append(r)

    mapping: Dict[Tuple[str, Optional[str]], int] = {}

    for code in REGIONAL_ROUNDS:
        rows = sorted(by_code.get(code, []), key=lambda r: (r.date, r.id))
        if not rows:
            continue
        if len(rows) == 1:
            for region in REGIONS:
                mapping[(code, region)] = rows[0].id
            continue

        halves = {infer_half(r.name): r for r in rows}
        if "A" in halves and "B" in halves:
            day_a, day_b = halves["A"], halves["B"]
        else:
            day_a, day_b = rows[0], rows[1]

        for region in DAY_REGIONS[code]["A"]:
            mapping[(code, region)] = day_a.id
        for region in DAY_REGIONS[code]["B"]:
            mapping[(code, region)] = day_b.id

    for code in NATIONAL_GAMES:
        rows = sorted(by_code.get(code, []), key=lambda r: (r.date, r.id))
        if rows:
            mapping[(code, None)] = rows[0].id

    return mapping


def r64_slot_for_seeds(seed_a: int, seed_b: int) -> Optional[int]:
    """1-based slot of the pairing containing the top (lowest) seed."""
    top = min(seed_a, seed_b)
    for i, pair in enumerate(R64_SEED_PAIRINGS, start=1):
        if top in pair:
            return i
    return None


def matchup_code(round_code: str, slot: int, region: Optional[str] = None) -> str:
    """EAST_R64_3, F4_1, CHIP_1."""
    if region is None:
        return f"{round_code}_{slot}"
    return f"{region.upper()}_{round_code}_{slot}"


def feeder_slots(slot: int) -> Tuple[int, int]:
    """Previous-round slots whose winners meet in this slot."""
    return (slot - 1) * 2 + 1, (slot - 1) * 2 + 2


def advancement_target(slot: int) -> Tuple[int, int]:
    """(next-round slot, team slot 1|2) a winner of this slot advances into."""
    return math.ceil(slot / 2), 1 if slot % 2 == 1 else 2


def bracket_position(slot: int) -> int:
    """0-based position of a slot within its region (or within F4/CHIP)."""
    return slot - 1


def placeholder_tipoff(day: date, slot: int) -> datetime:
    start = datetime(day.year, day.month, day.day, PLACEHOLDER_TIPOFF_HOUR, tzinfo=timezone.utc)
    return start + PLACEHOLDER_SLOT_SPACING * (slot - 1)
