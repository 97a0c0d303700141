"""
Result records returned by scheduler and cascade runs.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass
class CascadeResult:
    """Counts of real transitions made by one cascade tick."""
    games_updated: int = 0
    games_completed: int = 0
    games_unmatched: int = 0
    picks_correct: int = 0
    picks_incorrect: int = 0
    teams_eliminated: int = 0
    eliminated_wrong_pick: int = 0
    eliminated_missed_pick: int = 0
    eliminated_no_available_pick: int = 0
    future_picks_deleted: int = 0
    winners_propagated: int = 0
    rounds_completed: int = 0
    pools_completed: int = 0
    active_round_id: Optional[int] = None
    message: str = ""
    errors: List[str] = field(default_factory=list)

    @property
    def entries_eliminated(self) -> int:
        return self.eliminated_wrong_pick + self.eliminated_missed_pick + self.eliminated_no_available_pick

    @property
    def changed(self) -> bool:
        """True if the tick moved any state."""
        counts = asdict(self)
        for key in ("active_round_id", "message", "errors", "games_unmatched"):
            counts.pop(key)
        return any(counts.values())

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["entries_eliminated"] = self.entries_eliminated
        return d


@dataclass
class ActivationResult:
    activated_round_id: Optional[int] = None
    activated_round: Optional[str] = None
    deactivated_round_id: Optional[int] = None
    pools_activated: int = 0
    message: str = ""
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
