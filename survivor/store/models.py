"""
Domain records for the survivor pool store.

Rows come back from SQLite as sqlite3.Row; each record knows how to build
itself from one.
"""
import sqlite3
from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, Any

from survivor.utils.clock import parse_iso


class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"


class PoolStatus(str, Enum):
    OPEN = "open"
    ACTIVE = "active"
    COMPLETE = "complete"


class EliminationReason(str, Enum):
    WRONG_PICK = "wrong_pick"
    MISSED_PICK = "missed_pick"
    NO_AVAILABLE_PICK = "no_available_pick"
    MANUAL = "manual"


class RoundPhase(str, Enum):
    """Round lifecycle: pre_round -> round_live -> round_complete."""
    PRE_ROUND = "pre_round"
    ROUND_LIVE = "round_live"
    ROUND_COMPLETE = "round_complete"


@dataclass
class Team:
    id: int
    name: str
    seed: int
    region: str
    abbreviation: Optional[str] = None
    is_eliminated: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Team':
        return cls(
            id=row["id"],
            name=row["name"],
            seed=row["seed"],
            region=row["region"],
            abbreviation=row["abbreviation"],
            is_eliminated=bool(row["is_eliminated"]),
        )


@dataclass
class Round:
    id: int
    name: str
    date: date
    deadline: Optional[datetime] = None
    is_active: bool = False
    completed_at: Optional[datetime] = None

    @property
    def phase(self) -> RoundPhase:
        if self.completed_at is not None:
            return RoundPhase.ROUND_COMPLETE
        if self.is_active:
            return RoundPhase.ROUND_LIVE
        return RoundPhase.PRE_ROUND

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Round':
        return cls(
            id=row["id"],
            name=row["name"],
            date=date.fromisoformat(row["date"]),
            deadline=parse_iso(row["deadline_datetime"]),
            is_active=bool(row["is_active"]),
            completed_at=parse_iso(row["completed_at"]),
        )


@dataclass
class Game:
    id: int
    round_id: int
    status: GameStatus = GameStatus.SCHEDULED
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    winner_id: Optional[int] = None
    external_id: Optional[str] = None
    game_datetime: Optional[datetime] = None

    # Bracket graph fields
    matchup_code: Optional[str] = None
    bracket_position: Optional[int] = None
    tournament_round: Optional[str] = None
    parent_game_a_id: Optional[int] = None
    parent_game_b_id: Optional[int] = None
    advances_to_game_id: Optional[int] = None
    advances_to_slot: Optional[int] = None

    # Joined for score reconciliation, not stored on the games table
    team1_name: Optional[str] = None
    team2_name: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.status == GameStatus.FINAL

    @property
    def loser_id(self) -> Optional[int]:
        if self.winner_id is None:
            return None
        return self.team2_id if self.winner_id == self.team1_id else self.team1_id

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Game':
        keys = row.keys()
        return cls(
            id=row["id"],
            round_id=row["round_id"],
            status=GameStatus(row["status"]),
            team1_id=row["team1_id"],
            team2_id=row["team2_id"],
            team1_score=row["team1_score"],
            team2_score=row["team2_score"],
            winner_id=row["winner_id"],
            external_id=row["espn_game_id"],
            game_datetime=parse_iso(row["game_datetime"]),
            matchup_code=row["matchup_code"],
            bracket_position=row["bracket_position"],
            tournament_round=row["tournament_round"],
            parent_game_a_id=row["parent_game_a_id"],
            parent_game_b_id=row["parent_game_b_id"],
            advances_to_game_id=row["advances_to_game_id"],
            advances_to_slot=row["advances_to_slot"],
            team1_name=row["team1_name"] if "team1_name" in keys else None,
            team2_name=row["team2_name"] if "team2_name" in keys else None,
        )


@dataclass
class Pick:
    id: int
    entry_id: int
    round_id: int
    team_id: int
    is_correct: Optional[bool] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Pick':
        correct = row["is_correct"]
        return cls(
            id=row["id"],
            entry_id=row["pool_player_id"],
            round_id=row["round_id"],
            team_id=row["team_id"],
            is_correct=None if correct is None else bool(correct),
        )


@dataclass
class Entry:
    """One pool participant's bracket of picks."""
    id: int
    pool_id: int
    user_id: str
    entry_name: Optional[str] = None
    is_eliminated: bool = False
    elimination_round_id: Optional[int] = None
    elimination_reason: Optional[EliminationReason] = None
    entry_deleted: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Entry':
        reason = row["elimination_reason"]
        return cls(
            id=row["id"],
            pool_id=row["pool_id"],
            user_id=row["user_id"],
            entry_name=row["entry_name"],
            is_eliminated=bool(row["is_eliminated"]),
            elimination_round_id=row["elimination_round_id"],
            elimination_reason=EliminationReason(reason) if reason else None,
            entry_deleted=bool(row["entry_deleted"]),
        )


@dataclass
class Pool:
    id: int
    name: str
    status: PoolStatus = PoolStatus.OPEN
    winner_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Pool':
        return cls(
            id=row["id"],
            name=row["name"],
            status=PoolStatus(row["status"]),
            winner_id=row["winner_id"],
        )


@dataclass
class SchedulerState:
    """Single-row record of which round is live."""
    active_round_id: Optional[int]
    version: int
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'SchedulerState':
        return cls(
            active_round_id=row["active_round_id"],
            version=row["version"],
            updated_at=parse_iso(row["updated_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return d
