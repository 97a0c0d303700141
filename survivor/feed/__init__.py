"""
External score feed: ESPN scoreboard client and result reconciliation.
"""
from .espn_client import EspnScoreboardClient, ScoreEvent, Competitor, parse_scoreboard
from .reconciler import EspnReconciler, NormalizedResult

__all__ = [
    "EspnScoreboardClient",
    "ScoreEvent",
    "Competitor",
    "parse_scoreboard",
    "EspnReconciler",
    "NormalizedResult",
]
