from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional, Tuple

from survivor.bracket.structure import REGIONS


class CascadeResponse(BaseModel):
    """
    Counts from one cascade tick (or one manual game completion).
    """
    games_updated: int = 0
    games_completed: int = 0
    games_unmatched: int = 0
    picks_correct: int = 0
    picks_incorrect: int = 0
    teams_eliminated: int = 0
    eliminated_wrong_pick: int = 0
    eliminated_missed_pick: int = 0
    eliminated_no_available_pick: int = 0
    entries_eliminated: int = 0
    future_picks_deleted: int = 0
    winners_propagated: int = 0
    rounds_completed: int = 0
    pools_completed: int = 0
    active_round_id: Optional[int] = None
    message: str = ""
    errors: List[str] = Field(default_factory=list)


class ActivationResponse(BaseModel):
    activated_round_id: Optional[int] = None
    activated_round: Optional[str] = None
    deactivated_round_id: Optional[int] = None
    pools_activated: int = 0
    deadlines_synced: int = 0
    message: str = ""
    errors: List[str] = Field(default_factory=list)


class GenerateBracketRequest(BaseModel):
    """
    Optional Final Four pairing; defaults to East/West and South/Midwest.
    """
    f4_pairings: Optional[List[Tuple[str, str]]] = Field(
        default=None, description="Two [region, region] pairs covering every region once"
    )

    @field_validator("f4_pairings")
    @classmethod
    def regions_known(cls, v):
        if v is None:
            return v
        flat = [region for pair in v for region in pair]
        if len(v) != 2 or sorted(flat) != sorted(REGIONS):
            raise ValueError(f"pairings must cover {', '.join(REGIONS)} exactly once")
        return v


class BuildResponse(BaseModel):
    r64_backfilled: int
    games_created: int
    advancements_wired: int
    errors: List[str]


class CompleteGameRequest(BaseModel):
    """
    Manual completion of a single game.
    """
    game_id: int
    winner_id: int
    team1_score: Optional[int] = Field(default=None, ge=0)
    team2_score: Optional[int] = Field(default=None, ge=0)


class StandingsResponse(BaseModel):
    pool_id: int
    name: str
    status: str
    winner_id: Optional[str] = None
    entries: int
    alive: int
    standings: List[Dict[str, Any]]
