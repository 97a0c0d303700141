# tests/conftest.py
import pytest
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from survivor.bracket.structure import R64_SEED_PAIRINGS, REGIONS
from survivor.core.container import ServiceContainer
from survivor.feed.espn_client import Competitor, ScoreEvent
from survivor.store.db import PoolStore

# Configure pytest
pytest_plugins = []

# Calendar rounds of a 64-team tournament (name, date)
ROUND_CALENDAR = [
    ("Round of 64 - Day 1", date(2026, 3, 19)),
    ("Round of 64 - Day 2", date(2026, 3, 20)),
    ("Round of 32 - Day 1", date(2026, 3, 21)),
    ("Round of 32 - Day 2", date(2026, 3, 22)),
    ("Sweet 16 - Day 1", date(2026, 3, 26)),
    ("Sweet 16 - Day 2", date(2026, 3, 27)),
    ("Elite 8 - Day 1", date(2026, 3, 28)),
    ("Elite 8 - Day 2", date(2026, 3, 29)),
    ("Final Four", date(2026, 4, 4)),
    ("Championship", date(2026, 4, 6)),
]

DAY_ONE_REGIONS = ("East", "South")


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


def team_name(region: str, seed: int) -> str:
    return f"{region} {seed:02d}"


def deadline_for(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 16, 55, tzinfo=timezone.utc)


@dataclass
class Tournament:
    """Seeded store plus lookups used by the tests."""
    store: PoolStore
    teams: Dict[str, int] = field(default_factory=dict)       # "East 01" -> team id
    rounds: List[int] = field(default_factory=list)           # calendar order
    r64_games: Dict[str, int] = field(default_factory=dict)   # "EAST_R64_1" -> game id

    def team(self, region: str, seed: int) -> int:
        return self.teams[team_name(region, seed)]

    def round(self, index: int):
        return self.store.get_round(self.rounds[index])

    def game(self, code: str):
        game_id = self.store.matchup_code_ids()[code]
        return self.store.get_game(game_id)

    def before_deadline(self, index: int, hours: float = 1.0) -> datetime:
        return self.round(index).deadline - timedelta(hours=hours)


def seed_tournament(store: PoolStore) -> Tournament:
    t = Tournament(store=store)

    for region in REGIONS:
        for seed in range(1, 17):
            name = team_name(region, seed)
            t.teams[name] = store.add_team(name, seed, region, abbreviation=f"{region[0]}{seed:02d}")

    for name, day in ROUND_CALENDAR:
        t.rounds.append(store.add_round(name, day, deadline_for(day)))

    for region in REGIONS:
        round_index = 0 if region in DAY_ONE_REGIONS else 1
        day = ROUND_CALENDAR[round_index][1]
        for slot, (top, bottom) in enumerate(R64_SEED_PAIRINGS, start=1):
            tipoff = datetime(day.year, day.month, day.day, 17, tzinfo=timezone.utc) + timedelta(minutes=30 * slot)
            t.r64_games[f"{region.upper()}_R64_{slot}"] = store.add_game(
                t.rounds[round_index],
                t.team(region, top),
                t.team(region, bottom),
                game_datetime=tipoff,
            )
    return t


class FakeScoreboard:
    """
    Score source that reports every game of a day as final.

    The lower seed wins (ties broken by region order) unless a winner is
    forced through `overrides` (game id -> team id).
    """

    def __init__(self, store: PoolStore, overrides: Optional[Dict[int, int]] = None, in_progress: bool = False):
        self.store = store
        self.overrides = overrides or {}
        self.in_progress = in_progress
        self.calls: List[date] = []

    def _strength(self, team_id: int):
        team = self.store.get_team(team_id)
        return team.seed, REGIONS.index(team.region)

    def get_scoreboard(self, day: date) -> List[ScoreEvent]:
        self.calls.append(day)
        events = []
        round_ids = [r.id for r in self.store.list_rounds() if r.date == day]
        for round_id in round_ids:
            for game in self.store.list_games(round_id):
                if game.team1_id is None or game.team2_id is None:
                    continue
                winner = self.overrides.get(game.id)
                if winner is None:
                    winner = min(game.team1_id, game.team2_id, key=self._strength)
                score1, score2 = (71, 64) if winner == game.team1_id else (58, 66)
                first = Competitor(name=f"{game.team1_name} Wildcats", score=score1)
                second = Competitor(name=f"{game.team2_name} Wildcats", score=score2)
                # Scoreboard order is not ours for every other game
                competitors = [second, first] if game.id % 2 else [first, second]
                events.append(ScoreEvent(
                    external_id=f"evt-{game.id}",
                    competitors=competitors,
                    completed=not self.in_progress,
                    in_progress=self.in_progress,
                ))
        return events


@pytest.fixture(autouse=True)
def reset_container():
    """Every test starts from default service wiring."""
    ServiceContainer.reset()
    yield
    ServiceContainer.reset()


@pytest.fixture
def store(tmp_path):
    return PoolStore(str(tmp_path / "survivor.db"))


@pytest.fixture
def tournament(store):
    """64 teams, 10 calendar rounds and 32 seeded Round-of-64 games."""
    return seed_tournament(store)


@pytest.fixture
def bracket(tournament):
    """Tournament with the full bracket graph generated."""
    from survivor.bracket.builder import BracketBuilder

    result = BracketBuilder(tournament.store).generate()
    assert result.errors == []
    return tournament


@pytest.fixture
def scoreboard(tournament):
    return FakeScoreboard(tournament.store)


@pytest.fixture
def pool(tournament):
    """An open pool with three entries."""
    store = tournament.store
    pool_id = store.add_pool("Office Pool")
    entries = {
        name: store.add_entry(pool_id, f"user-{name}", entry_name=name.title())
        for name in ("alice", "bob", "carol")
    }
    return pool_id, entries
