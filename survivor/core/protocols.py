"""
Protocol definitions for the score-feed boundary.

The cascade engine only depends on these interfaces, so tests and
alternative providers can stand in for ESPN without touching the engine.
"""
from datetime import date
from typing import Protocol, Optional, List, Sequence, runtime_checkable

from survivor.feed.espn_client import ScoreEvent
from survivor.feed.reconciler import NormalizedResult
from survivor.store.models import Game


@runtime_checkable
class ScoreSource(Protocol):
    """
    Source of scoreboard events.

    Implementations:
    - EspnScoreboardClient (default): ESPN public scoreboard
    """

    def get_scoreboard(self, day: date) -> List[ScoreEvent]:
        """
        Fetch events for a calendar day.

        Args:
            day: Round date

        Returns:
            Events for that day

        Raises:
            ScoreFeedError: if the feed cannot be read
        """
        ...


@runtime_checkable
class ScoreReconciler(Protocol):
    """Map an internal game onto an external event."""

    def match(self, game: Game, events: Sequence[ScoreEvent]) -> Optional[NormalizedResult]:
        """
        Args:
            game: Internal game with team names joined
            events: Events from the score source

        Returns:
            Normalized result, or None when no event matches
        """
        ...
