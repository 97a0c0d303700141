"""
Score reconciliation: match an internal game to a scoreboard event and
normalize the result into our team1/team2 orientation.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from survivor.feed.espn_client import ScoreEvent
from survivor.store.models import Game, GameStatus


@dataclass
class NormalizedResult:
    game_id: int
    status: GameStatus
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    winner_id: Optional[int] = None
    external_id: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.status == GameStatus.FINAL and self.winner_id is not None


def _name_in(short: Optional[str], names: Sequence[str]) -> bool:
    if not short:
        return False
    short = short.lower()
    return any(short in n.lower() for n in names)


def _match_strength(ours: Optional[str], theirs: str) -> int:
    """
    How specifically our team name matches a scoreboard name; 0 for no match.

    Exact beats prefix beats contained, and longer names beat shorter ones,
    so "Michigan State" claims "Michigan State Spartans" over "Michigan".
    """
    if not ours or not theirs:
        return 0
    ours, theirs = ours.strip().lower(), theirs.strip().lower()
    if ours not in theirs:
        return 0
    if ours == theirs:
        return 3 * len(ours)
    if theirs.startswith(ours):
        return 2 * len(ours)
    return len(ours)


def _team1_is_first(game: Game, first: str, second: str) -> bool:
    """Pick the competitor orientation whose names match our teams best."""
    as_listed = _match_strength(game.team1_name, first) + _match_strength(game.team2_name, second)
    swapped = _match_strength(game.team1_name, second) + _match_strength(game.team2_name, first)
    return as_listed >= swapped


class EspnReconciler:
    """Match by external id first, then by both team names."""

    def find_event(self, game: Game, events: Sequence[ScoreEvent]) -> Optional[ScoreEvent]:
        if game.external_id:
            for event in events:
                if event.external_id == game.external_id:
                    return event

        if not game.team1_name or not game.team2_name:
            return None
        for event in events:
            names = [c.name for c in event.competitors]
            if _name_in(game.team1_name, names) and _name_in(game.team2_name, names):
                return event
        return None

    def match(self, game: Game, events: Sequence[ScoreEvent]) -> Optional[NormalizedResult]:
        """
        Build a NormalizedResult for `game`, or None when no event matches.

        A completed event only yields a winner when the scores differ.
        """
        event = self.find_event(game, events)
        if event is None:
            return None

        team1_score = team2_score = None
        if len(event.competitors) >= 2:
            first, second = event.competitors[0], event.competitors[1]
            if first.score is not None and second.score is not None:
                # Scoreboard order need not follow ours
                if _team1_is_first(game, first.name, second.name):
                    team1_score, team2_score = first.score, second.score
                else:
                    team1_score, team2_score = second.score, first.score

        status = game.status
        winner_id = None
        if event.completed and team1_score is not None and team1_score != team2_score:
            status = GameStatus.FINAL
            winner_id = game.team1_id if team1_score > team2_score else game.team2_id
        elif event.in_progress or event.completed:
            status = GameStatus.IN_PROGRESS

        return NormalizedResult(
            game_id=game.id,
            status=status,
            team1_score=team1_score,
            team2_score=team2_score,
            winner_id=winner_id,
            external_id=event.external_id,
        )
