"""
Pool finalization: decide the winner of a pool once the tournament is over.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from survivor.exceptions import AnomalyWarning
from survivor.store.models import Entry


@dataclass
class PoolFinalization:
    pool_id: int
    winner_user_id: Optional[str] = None
    survivors: List[int] = field(default_factory=list)
    anomaly: Optional[AnomalyWarning] = None


def finalize_pool(pool_id: int, entries: Sequence[Entry]) -> PoolFinalization:
    """
    Winner is the owner of the single surviving entry.

    Zero or several survivors leave the winner unset and carry an anomaly for
    the operator log. Deleted entries never count.
    """
    survivors = [e for e in entries if not e.is_eliminated and not e.entry_deleted]
    result = PoolFinalization(pool_id=pool_id, survivors=[e.id for e in survivors])

    if len(survivors) == 1:
        result.winner_user_id = survivors[0].user_id
    elif not survivors:
        result.anomaly = AnomalyWarning(f"Pool {pool_id} finished with no surviving entries")
    else:
        result.anomaly = AnomalyWarning(
            f"Pool {pool_id} finished with {len(survivors)} surviving entries"
        )
    return result
