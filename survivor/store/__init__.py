"""
Persistence package: domain records and the SQLite pool store.
"""
from .models import (
    Team,
    Round,
    Game,
    Pick,
    Entry,
    Pool,
    SchedulerState,
    GameStatus,
    PoolStatus,
    EliminationReason,
    RoundPhase,
)
from .db import PoolStore, get_pool_store

__all__ = [
    "Team",
    "Round",
    "Game",
    "Pick",
    "Entry",
    "Pool",
    "SchedulerState",
    "GameStatus",
    "PoolStatus",
    "EliminationReason",
    "RoundPhase",
    "PoolStore",
    "get_pool_store",
]
