"""
Round scheduler.

Decides which calendar round is live. All activation changes go through
transition(), a compare-and-swap on the scheduler_state version, so two
overlapping scheduler invocations cannot both move the tournament.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from survivor.engine.results import ActivationResult
from survivor.exceptions import SchedulerConflict
from survivor.store.db import PoolStore
from survivor.store.models import Round, SchedulerState
from survivor.utils.clock import effective_now
from survivor.utils.observability import Logger

logger = Logger(__name__)


class RoundScheduler:
    """
    Round lifecycle: pre_round -> round_live -> round_complete.

    Example:
        scheduler = RoundScheduler(store)
        result = scheduler.activate_rounds()
    """

    def __init__(
        self,
        store: PoolStore,
        lookahead_hours: float = None,
        lookbehind_hours: float = None,
        deadline_lead_minutes: int = None,
    ):
        from survivor.config import settings

        cfg = settings.scheduler
        self.store = store
        self.lookahead_hours = cfg.lookahead_hours if lookahead_hours is None else lookahead_hours
        self.lookbehind_hours = cfg.lookbehind_hours if lookbehind_hours is None else lookbehind_hours
        self.deadline_lead = timedelta(
            minutes=cfg.deadline_lead_minutes if deadline_lead_minutes is None else deadline_lead_minutes
        )

    def state(self) -> SchedulerState:
        return self.store.get_scheduler_state()

    def active_round(self) -> Optional[Round]:
        state = self.state()
        if state.active_round_id is None:
            return None
        return self.store.get_round(state.active_round_id)

    def transition(
        self,
        expected_version: int,
        active_round_id: Optional[int],
        completed_round_id: Optional[int] = None,
        now: datetime = None,
    ) -> bool:
        """
        The single place the live round changes.

        Returns False if another writer got there first; the caller's view of
        the state is then stale and nothing was changed.
        """
        swapped = self.store.transition_scheduler(
            expected_version, active_round_id, completed_round_id, now=effective_now(now)
        )
        if not swapped:
            conflict = SchedulerConflict(expected_version, self.state().version)
            logger.log_warning("scheduler_transition_lost", reason=str(conflict))
            return False

        logger.log_event(
            "scheduler_transition",
            active_round_id=active_round_id,
            completed_round_id=completed_round_id,
            version=expected_version + 1,
        )
        return True

    def in_window(self, round_: Round, now: datetime) -> bool:
        if round_.deadline is None:
            return False
        hours_until = (round_.deadline - now).total_seconds() / 3600
        return -self.lookbehind_hours <= hours_until <= self.lookahead_hours

    def candidate_round(self, now: datetime, rounds: List[Round] = None) -> Optional[Round]:
        """Earliest non-complete round whose deadline falls inside the activation window."""
        for r in rounds if rounds is not None else self.store.list_rounds():
            if r.completed_at is None and self.in_window(r, now):
                return r
        return None

    def activate_rounds(self, now: datetime = None) -> ActivationResult:
        """Make the round whose deadline is near the live round."""
        now = effective_now(now)
        result = ActivationResult()

        rounds = self.store.list_rounds()
        if not rounds:
            result.message = "No rounds found"
            return result

        state = self.state()
        candidate = self.candidate_round(now, rounds)
        if candidate is None:
            result.message = "No round within activation window"
            return result

        if candidate.id == state.active_round_id:
            result.message = f"{candidate.name} already active"
            return result

        prior = state.active_round_id
        if prior is not None and self.store.count_games(prior, non_final_only=True) > 0:
            logger.log_warning("deactivating_incomplete_round", round_id=prior, next_round_id=candidate.id)

        if not self.transition(state.version, candidate.id, now=now):
            result.message = "Scheduler state changed concurrently; no change made"
            return result

        result.activated_round_id = candidate.id
        result.activated_round = candidate.name
        result.deactivated_round_id = prior

        if candidate.id == rounds[0].id:
            result.pools_activated = self.store.activate_open_pools()

        result.message = f"Activated {candidate.name}"
        logger.log_event(
            "round_activated",
            round_id=candidate.id,
            round_name=candidate.name,
            deactivated_round_id=prior,
            pools_activated=result.pools_activated,
        )
        return result

    def complete_round(self, round_id: int, now: datetime = None) -> bool:
        """Clear the live round and stamp it complete. No-op if it is not live."""
        state = self.state()
        if state.active_round_id != round_id:
            return False
        return self.transition(state.version, None, completed_round_id=round_id, now=now)

    def sync_deadlines(self) -> int:
        """Set each round's pick deadline to its earliest tip-off minus the lead."""
        updated = 0
        for r in self.store.list_rounds():
            first_tip = self.store.earliest_game_time(r.id)
            if first_tip is None:
                continue
            deadline = first_tip - self.deadline_lead
            if r.deadline != deadline:
                updated += self.store.set_round_deadline(r.id, deadline)
        if updated:
            logger.log_event("deadlines_synced", rounds_updated=updated)
        return updated
