"""
Cascade engine.

One tick, in order:
1. Ingest scores for the live round's unfinished games
2. For every final game: grade picks, eliminate the losing team and the
   entries that picked it, push the winner into its next game
3. Once every game in the round is final: eliminate entries with no pick
4. Complete the round; after the last round, complete every active pool

Step 2 runs over all final games on every tick, not only the ones that just
finished. Each write is guarded by the state it expects, so repeats are no-ops
and a tick that failed halfway is finished by the next one.
"""
import sqlite3
import time
from datetime import datetime
from typing import List, Optional

from survivor.bracket.structure import ROUND_CODES
from survivor.core.protocols import ScoreReconciler, ScoreSource
from survivor.engine.finalizer import finalize_pool
from survivor.engine.results import CascadeResult
from survivor.engine.scheduler import RoundScheduler
from survivor.exceptions import MutationError, ReconciliationMiss, ScoreFeedError
from survivor.store.db import PoolStore
from survivor.store.models import EliminationReason, Entry, Game, GameStatus, PoolStatus, Round
from survivor.utils.clock import effective_now
from survivor.utils.observability import Logger, get_metrics

logger = Logger(__name__)


def _label(game: Game) -> str:
    return game.matchup_code or f"game {game.id}"


class CascadeEngine:
    """
    Turn final scores into grades, eliminations and bracket advancement.

    Example:
        engine = CascadeEngine(store, score_source=EspnScoreboardClient())
        result = engine.run_tick()
        print(result.to_dict())
    """

    def __init__(
        self,
        store: PoolStore,
        scheduler: RoundScheduler = None,
        score_source: Optional[ScoreSource] = None,
        reconciler: Optional[ScoreReconciler] = None,
    ):
        from survivor.core.container import ServiceContainer

        self.store = store
        self.scheduler = scheduler or RoundScheduler(store)
        self.score_source = score_source
        self.reconciler = reconciler or ServiceContainer.get_reconciler()
        self.metrics = get_metrics()

    def _fail(self, result: CascadeResult, step: str, target: str, exc: Exception) -> None:
        error = MutationError(step, target, exc)
        result.errors.append(str(error))
        self.metrics.mutation_errors.labels(step=step).inc()
        logger.log_error("mutation_failed", step=step, target=target, error=str(exc))

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def run_tick(self, now: datetime = None) -> CascadeResult:
        """
        Run one cascade tick against the live round.

        Single-item failures land in `errors`; only a failure to read the
        live round escapes.
        """
        logger.with_correlation_id()
        start = time.time()
        now = effective_now(now)
        result = CascadeResult()

        active = self.scheduler.active_round()
        if active is None:
            result.message = "No active round"
            self.metrics.ticks.labels(status="idle").inc()
            logger.log_event("cascade_tick_idle", reason=result.message)
            return result

        result.active_round_id = active.id
        try:
            self._ingest_scores(active, result)
            self._sweep_round(active, result)
            self._finish_round(active, result, now)
        except Exception:
            self.metrics.ticks.labels(status="failed").inc()
            raise
        finally:
            self.metrics.tick_duration.observe(time.time() - start)

        self.metrics.ticks.labels(status="processed" if result.changed else "idle").inc()
        self._record_metrics(result)
        if not result.message:
            result.message = f"Processed {active.name}"
        logger.log_event("cascade_tick_complete", round_id=active.id, **self._summary(result))
        return result

    def _summary(self, result: CascadeResult) -> dict:
        d = result.to_dict()
        d["errors"] = len(result.errors)
        d.pop("active_round_id")
        d.pop("message")
        return d

    def _record_metrics(self, result: CascadeResult) -> None:
        m = self.metrics
        m.games_completed.inc(result.games_completed)
        m.picks_graded.labels(outcome="correct").inc(result.picks_correct)
        m.picks_graded.labels(outcome="incorrect").inc(result.picks_incorrect)
        m.entries_eliminated.labels(reason="wrong_pick").inc(result.eliminated_wrong_pick)
        m.entries_eliminated.labels(reason="missed_pick").inc(result.eliminated_missed_pick)
        m.entries_eliminated.labels(reason="no_available_pick").inc(result.eliminated_no_available_pick)
        m.pools_completed.inc(result.pools_completed)
        m.alive_entries.set(len(self.store.alive_entries()))
        m.last_tick_timestamp.set(time.time())

    # ------------------------------------------------------------------
    # Step 1: score ingestion
    # ------------------------------------------------------------------

    def _ingest_scores(self, round_: Round, result: CascadeResult) -> None:
        pending = self.store.pending_games(round_.id)
        if not pending:
            return

        if self.score_source is None:
            from survivor.core.container import ServiceContainer
            self.score_source = ServiceContainer.get_score_source()

        try:
            events = self.score_source.get_scoreboard(round_.date)
        except ScoreFeedError as e:
            result.errors.append(str(e))
            self.metrics.feed_failures.inc()
            logger.log_error("score_feed_unavailable", round_id=round_.id, error=str(e))
            return

        for game in pending:
            normalized = self.reconciler.match(game, events)
            if normalized is None:
                result.games_unmatched += 1
                logger.log_event("score_unmatched", reason=str(ReconciliationMiss(game.id, game.matchup_code)))
                continue

            try:
                changed = self.store.record_game_update(
                    game.id,
                    normalized.status,
                    normalized.team1_score,
                    normalized.team2_score,
                    normalized.winner_id,
                    normalized.external_id,
                )
            except sqlite3.Error as e:
                self._fail(result, "update_game", _label(game), e)
                continue

            result.games_updated += changed
            if changed and normalized.is_final:
                result.games_completed += 1
                logger.log_event("game_final", game=_label(game), winner_id=normalized.winner_id)

    # ------------------------------------------------------------------
    # Step 2: grading, elimination, propagation
    # ------------------------------------------------------------------

    def _sweep_round(self, round_: Round, result: CascadeResult) -> None:
        for game in self.store.final_games(round_.id):
            self._apply_final_game(round_, game, result)

    def _apply_final_game(self, round_: Round, game: Game, result: CascadeResult) -> None:
        winner, loser = game.winner_id, game.loser_id
        label = _label(game)

        try:
            result.picks_correct += self.store.grade_picks(round_.id, winner, correct=True)
            if loser is not None:
                result.picks_incorrect += self.store.grade_picks(round_.id, loser, correct=False)
                result.teams_eliminated += self.store.eliminate_team(loser)
        except sqlite3.Error as e:
            self._fail(result, "grade", label, e)

        if loser is not None:
            try:
                losers = self.store.alive_entries_with_incorrect_pick(round_.id, loser)
                eliminated = self.store.eliminate_entries(losers, round_.id, EliminationReason.WRONG_PICK)
                result.eliminated_wrong_pick += eliminated
                result.future_picks_deleted += self.store.delete_picks_after(losers, round_)
                if eliminated:
                    logger.log_event("entries_eliminated", game=label, reason="wrong_pick", count=eliminated)
            except sqlite3.Error as e:
                self._fail(result, "eliminate", label, e)

        if game.advances_to_game_id is not None and game.advances_to_slot in (1, 2):
            try:
                result.winners_propagated += self.store.fill_slot(
                    game.advances_to_game_id, game.advances_to_slot, winner
                )
            except sqlite3.Error as e:
                self._fail(result, "propagate", label, e)

    # ------------------------------------------------------------------
    # Steps 3-4: missed picks, round and pool completion
    # ------------------------------------------------------------------

    def _round_finished(self, round_: Round) -> bool:
        total = self.store.count_games(round_.id)
        return total > 0 and self.store.count_games(round_.id, non_final_only=True) == 0

    def _split_missing(self, round_: Round, missing: List[Entry]):
        """Entries that could not have picked anyone vs. entries that simply did not."""
        round_teams = self.store.round_team_ids(round_.id)
        no_available, missed = [], []
        for entry in missing:
            used = self.store.used_team_ids(entry.id, before_round=round_)
            if round_teams and round_teams <= used:
                no_available.append(entry.id)
            else:
                missed.append(entry.id)
        return no_available, missed

    def _eliminate_missing_picks(self, round_: Round, result: CascadeResult) -> bool:
        """Returns False if the batch failed and the round must stay live."""
        try:
            with_pick = self.store.entry_ids_with_pick(round_.id)
            missing = [e for e in self.store.alive_entries() if e.id not in with_pick]
            if not missing:
                return True

            no_available, missed = self._split_missing(round_, missing)
            result.eliminated_no_available_pick += self.store.eliminate_entries(
                no_available, round_.id, EliminationReason.NO_AVAILABLE_PICK
            )
            result.eliminated_missed_pick += self.store.eliminate_entries(
                missed, round_.id, EliminationReason.MISSED_PICK
            )
            result.future_picks_deleted += self.store.delete_picks_after(no_available + missed, round_)
        except sqlite3.Error as e:
            self._fail(result, "missed_pick", round_.name, e)
            return False

        logger.log_event(
            "missing_picks_eliminated",
            round_id=round_.id,
            missed_pick=len(missed),
            no_available_pick=len(no_available),
        )
        return True

    def _finalize_pools(self, result: CascadeResult) -> bool:
        ok = True
        for pool in self.store.list_pools(PoolStatus.ACTIVE):
            finalization = finalize_pool(pool.id, self.store.list_entries(pool.id))
            if finalization.anomaly is not None:
                logger.log_warning(
                    "pool_finalization_anomaly",
                    pool_id=pool.id,
                    survivors=finalization.survivors,
                    reason=str(finalization.anomaly),
                )
            try:
                completed = self.store.complete_pool(pool.id, finalization.winner_user_id)
            except sqlite3.Error as e:
                self._fail(result, "finalize", f"pool {pool.id}", e)
                ok = False
                continue
            result.pools_completed += completed
            if completed:
                logger.log_event("pool_completed", pool_id=pool.id, winner=finalization.winner_user_id)
        return ok

    def _finish_round(self, round_: Round, result: CascadeResult, now: datetime) -> None:
        if not self._round_finished(round_):
            return
        if not self._eliminate_missing_picks(round_, result):
            return

        if not self.store.later_rounds(round_):
            if not self._finalize_pools(result):
                return
            result.message = "Tournament complete"

        if self.scheduler.complete_round(round_.id, now=now):
            result.rounds_completed += 1
            logger.log_event("round_completed", round_id=round_.id, round_name=round_.name)

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def apply_manual_result(
        self,
        game_id: int,
        winner_id: int,
        team1_score: Optional[int] = None,
        team2_score: Optional[int] = None,
        now: datetime = None,
    ) -> CascadeResult:
        """
        Complete one game by hand and cascade it like a feed result.

        Raises:
            ValueError: unknown game, missing teams or a winner not playing
        """
        game = self.store.get_game(game_id)
        if game is None:
            raise ValueError(f"Game {game_id} not found")
        if game.team1_id is None or game.team2_id is None:
            raise ValueError(f"{_label(game)} does not have both teams yet")
        if winner_id not in (game.team1_id, game.team2_id):
            raise ValueError(f"Team {winner_id} is not playing in {_label(game)}")

        result = CascadeResult(active_round_id=game.round_id)
        try:
            changed = self.store.record_game_update(
                game.id, GameStatus.FINAL, team1_score, team2_score, winner_id
            )
        except sqlite3.Error as e:
            self._fail(result, "update_game", _label(game), e)
            return result
        result.games_updated += changed
        result.games_completed += changed

        game = self.store.get_game(game_id)
        round_ = self.store.get_round(game.round_id)
        if game.winner_id != winner_id:
            result.errors.append(f"{_label(game)} is already final with a different winner")
            return result
        self._apply_final_game(round_, game, result)

        if round_.is_active:
            self._finish_round(round_, result, effective_now(now))

        self._record_metrics(result)
        result.message = f"Completed {_label(game)}"
        logger.log_event("manual_result_applied", game=_label(game), winner_id=winner_id)
        return result

    def clear_bracket_advancement(self, from_round_code: str) -> int:
        """Blank every game in the rounds after `from_round_code`. Shell games stay."""
        if from_round_code not in ROUND_CODES:
            return 0
        later = ROUND_CODES[ROUND_CODES.index(from_round_code) + 1:]
        cleared = self.store.clear_rounds(later)
        logger.log_event("bracket_advancement_cleared", after=from_round_code, games=cleared)
        return cleared
