"""
Core module - Protocols and the service container.
"""
from .protocols import ScoreSource, ScoreReconciler
from .container import ServiceContainer

__all__ = [
    "ScoreSource",
    "ScoreReconciler",
    "ServiceContainer",
]
