# tests/integration/test_tournament_run.py
"""
A whole tournament driven through the scheduler and the cascade.

The fake scoreboard lets the better seed win every game (East beats South
beats West beats Midwest on equal seeds), so the outcome is known upfront.
"""
import pytest
from datetime import timedelta

from survivor.engine.cascade import CascadeEngine
from survivor.engine.scheduler import RoundScheduler
from survivor.store.models import EliminationReason, GameStatus, PoolStatus, RoundPhase

# One pick per calendar round; every team wins its game that day
ALICE_PLAN = [
    ("East", 3), ("West", 3),
    ("South", 3), ("Midwest", 3),
    ("South", 2), ("East", 2),
    ("West", 1), ("Midwest", 1),
    ("South", 1),
    ("East", 1),
]


@pytest.mark.integration
class TestTournamentRun:

    @pytest.fixture
    def season(self, bracket, pool, scoreboard):
        store = bracket.store
        pool_id, entries = pool
        side_pool = store.add_pool("Side Pool")
        dave = store.add_entry(side_pool, "user-dave")

        # Bob takes an upset, Carol only picks once
        store.add_pick(entries["bob"], bracket.rounds[0], bracket.team("East", 14))
        store.add_pick(entries["bob"], bracket.rounds[2], bracket.team("South", 1))
        store.add_pick(entries["carol"], bracket.rounds[0], bracket.team("East", 1))

        scheduler = RoundScheduler(store)
        engine = CascadeEngine(store, scheduler=scheduler, score_source=scoreboard)

        results = []
        for index, (region, seed) in enumerate(ALICE_PLAN):
            now = bracket.before_deadline(index)
            activation = scheduler.activate_rounds(now=now)
            assert activation.activated_round_id == bracket.rounds[index], activation.message

            store.add_pick(entries["alice"], bracket.rounds[index], bracket.team(region, seed))
            results.append(engine.run_tick(now=now + timedelta(hours=8)))

        return {
            "tournament": bracket,
            "pool_id": pool_id,
            "side_pool": side_pool,
            "entries": dict(entries, dave=dave),
            "results": results,
            "engine": engine,
        }

    def test_every_round_completes_cleanly(self, season):
        results = season["results"]
        assert all(r.errors == [] for r in results)
        assert [r.rounds_completed for r in results] == [1] * 10
        assert [r.games_completed for r in results] == [16, 16, 8, 8, 4, 4, 2, 2, 2, 1]
        assert sum(r.winners_propagated for r in results) == 62
        assert sum(r.teams_eliminated for r in results) == 63

    def test_bracket_fully_played(self, season):
        t = season["tournament"]
        games = t.store.list_games()
        assert all(g.status == GameStatus.FINAL for g in games)
        assert t.game("CHIP_1").winner_id == t.team("East", 1)
        assert t.game("F4_2").winner_id == t.team("South", 1)

        eliminated = [team for team in t.store.list_teams() if team.is_eliminated]
        assert len(eliminated) == 63

    def test_eliminations(self, season):
        t = season["tournament"]
        store = t.store
        entries = season["entries"]
        first_round, second_round = season["results"][:2]

        assert first_round.eliminated_wrong_pick == 1
        assert first_round.eliminated_missed_pick == 1
        assert first_round.future_picks_deleted == 1
        assert second_round.eliminated_missed_pick == 1

        bob = store.get_entry(entries["bob"])
        carol = store.get_entry(entries["carol"])
        dave = store.get_entry(entries["dave"])
        assert (bob.elimination_reason, bob.elimination_round_id) == (EliminationReason.WRONG_PICK, t.rounds[0])
        assert (carol.elimination_reason, carol.elimination_round_id) == (EliminationReason.MISSED_PICK, t.rounds[1])
        assert dave.elimination_reason == EliminationReason.MISSED_PICK

        alice_picks = store.list_picks(entry_id=entries["alice"])
        assert len(alice_picks) == 10
        assert all(p.is_correct for p in alice_picks)

    def test_pools_finalized(self, season):
        store = season["tournament"].store
        final = season["results"][-1]

        assert final.message == "Tournament complete"
        assert final.pools_completed == 2

        main_pool = store.get_pool(season["pool_id"])
        assert (main_pool.status, main_pool.winner_id) == (PoolStatus.COMPLETE, "user-alice")

        side_pool = store.get_pool(season["side_pool"])
        assert (side_pool.status, side_pool.winner_id) == (PoolStatus.COMPLETE, None)

    def test_scheduler_at_rest(self, season):
        t = season["tournament"]
        assert t.store.get_scheduler_state().active_round_id is None
        assert all(r.phase == RoundPhase.ROUND_COMPLETE for r in t.store.list_rounds())

        after = season["engine"].run_tick()
        assert after.message == "No active round"
        assert not after.changed
