"""
Tournament engine: round scheduling, result cascade and pool finalization.
"""
from .results import CascadeResult, ActivationResult
from .scheduler import RoundScheduler
from .cascade import CascadeEngine
from .finalizer import finalize_pool, PoolFinalization

__all__ = [
    "CascadeResult",
    "ActivationResult",
    "RoundScheduler",
    "CascadeEngine",
    "finalize_pool",
    "PoolFinalization",
]
