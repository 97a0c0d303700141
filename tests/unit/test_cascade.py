import pytest
from datetime import date, datetime, timezone

from survivor.engine.cascade import CascadeEngine
from survivor.engine.scheduler import RoundScheduler
from survivor.exceptions import ScoreFeedError
from survivor.store.models import EliminationReason, GameStatus, PoolStatus


class DroppingSource:
    """Wraps a score source and hides some events."""

    def __init__(self, inner, hidden_game_ids):
        self.inner = inner
        self.hidden = {f"evt-{game_id}" for game_id in hidden_game_ids}

    def get_scoreboard(self, day):
        return [e for e in self.inner.get_scoreboard(day) if e.external_id not in self.hidden]


def start_round(tournament, index=0):
    result = RoundScheduler(tournament.store).activate_rounds(now=tournament.before_deadline(index))
    assert result.activated_round_id == tournament.rounds[index]


class TestRunTick:

    @pytest.fixture
    def picks(self, bracket, pool):
        """Alice and Carol pick winners, Bob picks an upset that does not happen."""
        store = bracket.store
        _, entries = pool
        r0 = bracket.rounds[0]
        store.add_pick(entries["alice"], r0, bracket.team("East", 3))
        store.add_pick(entries["bob"], r0, bracket.team("East", 14))
        store.add_pick(entries["bob"], bracket.rounds[2], bracket.team("South", 1))
        store.add_pick(entries["carol"], r0, bracket.team("East", 1))
        start_round(bracket)
        return entries

    def test_no_active_round(self, tournament, scoreboard):
        result = CascadeEngine(tournament.store, score_source=scoreboard).run_tick()
        assert result.message == "No active round"
        assert scoreboard.calls == []

    def test_full_round(self, bracket, scoreboard, picks):
        store = bracket.store
        engine = CascadeEngine(store, score_source=scoreboard)

        result = engine.run_tick(now=datetime(2026, 3, 19, 23, tzinfo=timezone.utc))

        assert result.errors == []
        assert scoreboard.calls == [date(2026, 3, 19)]
        assert result.games_completed == 16
        assert result.picks_correct == 2
        assert result.picks_incorrect == 1
        assert result.teams_eliminated == 16
        assert result.eliminated_wrong_pick == 1
        assert result.future_picks_deleted == 1
        assert result.winners_propagated == 16
        assert result.rounds_completed == 1
        assert result.message == "Processed Round of 64 - Day 1"

        bob = store.get_entry(picks["bob"])
        assert bob.elimination_reason == EliminationReason.WRONG_PICK
        assert bob.elimination_round_id == bracket.rounds[0]
        assert store.list_picks(entry_id=picks["bob"], round_id=bracket.rounds[2]) == []

        r32 = bracket.game("EAST_R32_2")
        assert (r32.team1_id, r32.team2_id) == (bracket.team("East", 5), bracket.team("East", 4))
        assert store.get_team(bracket.team("East", 14)).is_eliminated
        assert store.get_scheduler_state().active_round_id is None

    def test_scores_oriented_to_our_teams(self, bracket, scoreboard, picks):
        CascadeEngine(bracket.store, score_source=scoreboard).run_tick()
        for code in ("EAST_R64_1", "EAST_R64_2"):
            game = bracket.game(code)
            assert game.winner_id == game.team1_id
            assert (game.team1_score, game.team2_score) == (71, 64)
            assert game.external_id == f"evt-{game.id}"

    def test_repeat_tick_changes_nothing(self, bracket, scoreboard, picks):
        """A round that cannot finish yet is re-swept without double counting."""
        hidden = bracket.r64_games["SOUTH_R64_8"]
        engine = CascadeEngine(bracket.store, score_source=DroppingSource(scoreboard, [hidden]))

        first = engine.run_tick()
        second = engine.run_tick()

        assert first.games_completed == 15
        assert first.games_unmatched == 1
        assert first.rounds_completed == 0
        assert second.games_unmatched == 1
        assert not second.changed
        assert bracket.store.get_scheduler_state().active_round_id == bracket.rounds[0]

    def test_missed_pick_waits_for_round_then_drops_future_picks(self, bracket, scoreboard, pool):
        store = bracket.store
        _, entries = pool
        r0 = bracket.rounds[0]
        store.add_pick(entries["alice"], r0, bracket.team("East", 1))
        store.add_pick(entries["bob"], r0, bracket.team("East", 2))
        store.add_pick(entries["carol"], bracket.rounds[3], bracket.team("West", 1))
        start_round(bracket)

        hidden = bracket.r64_games["EAST_R64_5"]
        partial = CascadeEngine(store, score_source=DroppingSource(scoreboard, [hidden])).run_tick()
        assert partial.eliminated_missed_pick == 0
        assert not store.get_entry(entries["carol"]).is_eliminated

        result = CascadeEngine(store, score_source=scoreboard).run_tick()

        assert result.games_completed == 1
        assert result.eliminated_missed_pick == 1
        assert result.future_picks_deleted == 1
        carol = store.get_entry(entries["carol"])
        assert (carol.elimination_reason, carol.elimination_round_id) == (EliminationReason.MISSED_PICK, r0)
        assert store.list_picks(entry_id=entries["carol"]) == []

    def test_in_progress_scores(self, bracket, scoreboard, picks):
        scoreboard.in_progress = True

        result = CascadeEngine(bracket.store, score_source=scoreboard).run_tick()

        assert result.games_updated == 16
        assert result.games_completed == 0
        assert result.picks_correct == 0
        game = bracket.game("SOUTH_R64_1")
        assert game.status == GameStatus.IN_PROGRESS
        assert game.winner_id is None
        assert game.team1_score == 71

    def test_feed_failure_is_recorded(self, bracket, picks, mocker):
        source = mocker.Mock()
        source.get_scoreboard.side_effect = ScoreFeedError("Scoreboard unavailable: HTTP 503", status=503)

        result = CascadeEngine(bracket.store, score_source=source).run_tick()

        assert result.errors == ["Scoreboard unavailable: HTTP 503"]
        assert not result.changed
        assert bracket.store.get_scheduler_state().active_round_id == bracket.rounds[0]

    def test_malformed_scoreboard_body_is_recorded(self, bracket, picks):
        import httpx
        from survivor.feed.espn_client import EspnScoreboardClient

        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=["not", "an", "object"]))
        source = EspnScoreboardClient(
            base_url="https://feed.test", client=httpx.Client(transport=transport), max_retries=0
        )

        result = CascadeEngine(bracket.store, score_source=source).run_tick()

        assert len(result.errors) == 1
        assert "unexpected payload" in result.errors[0]
        assert not result.changed

    def test_unmatched_games_skipped(self, bracket, picks, mocker):
        source = mocker.Mock()
        source.get_scoreboard.return_value = []

        result = CascadeEngine(bracket.store, score_source=source).run_tick()

        assert result.games_unmatched == 16
        assert result.games_updated == 0
        assert result.errors == []

    def test_single_write_failure_does_not_stop_tick(self, bracket, scoreboard, picks, mocker):
        import sqlite3

        store = bracket.store
        real_fill = store.fill_slot
        blocked = bracket.game("EAST_R32_1").id

        def flaky(game_id, slot, team_id):
            if game_id == blocked:
                raise sqlite3.OperationalError("database is locked")
            return real_fill(game_id, slot, team_id)

        mocker.patch.object(store, "fill_slot", side_effect=flaky)
        result = CascadeEngine(store, score_source=scoreboard).run_tick()

        assert result.winners_propagated == 14
        assert len(result.errors) == 2
        assert result.errors[0].startswith("propagate EAST_R64_1")
        # Everything else still happened
        assert result.eliminated_wrong_pick == 1


class TestMissingPicks:

    @staticmethod
    def _schedule(store, names, matchups):
        """One single-game round per matchup, on consecutive days."""
        teams = {name: store.add_team(name, seed, "East") for seed, name in enumerate(names, start=1)}
        rounds = []
        for i, (home, away) in enumerate(matchups):
            day = date(2026, 3, 19 + i)
            deadline = datetime(day.year, day.month, day.day, 16, 55, tzinfo=timezone.utc)
            round_id = store.add_round(f"Round {i + 1}", day, deadline)
            game_id = store.add_game(round_id, teams[home], teams[away])
            rounds.append((round_id, game_id, deadline))
        return teams, rounds

    @pytest.fixture
    def mini(self, store):
        """Three single-game rounds: A-C, B-D, then A-B."""
        return self._schedule(store, "ABCD", [("A", "C"), ("B", "D"), ("A", "B")])

    def _play(self, store, rounds, index, winner):
        round_id, game_id, deadline = rounds[index]
        RoundScheduler(store).activate_rounds(now=deadline.replace(hour=12))
        return CascadeEngine(store).apply_manual_result(game_id, winner, 70, 60, now=deadline.replace(hour=23))

    def test_missed_versus_no_available(self, store, mini):
        teams, rounds = mini
        pool_id = store.add_pool("Mini")
        spent = store.add_entry(pool_id, "user-spent")
        lazy = store.add_entry(pool_id, "user-lazy")
        store.add_pick(spent, rounds[0][0], teams["A"])
        store.add_pick(spent, rounds[1][0], teams["B"])
        store.add_pick(lazy, rounds[0][0], teams["A"])

        first = self._play(store, rounds, 0, teams["A"])
        assert first.rounds_completed == 1
        assert store.get_pool(pool_id).status == PoolStatus.ACTIVE

        second = self._play(store, rounds, 1, teams["B"])
        assert second.eliminated_missed_pick == 1
        assert store.get_entry(lazy).elimination_reason == EliminationReason.MISSED_PICK

        # Both teams of the last game were already used
        third = self._play(store, rounds, 2, teams["A"])
        assert third.eliminated_no_available_pick == 1
        assert third.eliminated_missed_pick == 0
        assert store.get_entry(spent).elimination_reason == EliminationReason.NO_AVAILABLE_PICK

        pool = store.get_pool(pool_id)
        assert third.pools_completed == 1
        assert pool.status == PoolStatus.COMPLETE
        assert pool.winner_id is None

    def test_team_saved_for_later_round_still_counts_as_available(self, store):
        teams, rounds = self._schedule(store, "CDXY", [("C", "X"), ("C", "D"), ("D", "Y")])
        pool_id = store.add_pool("Saver")
        saver = store.add_entry(pool_id, "user-saver")
        store.add_pick(saver, rounds[0][0], teams["C"])
        store.add_pick(saver, rounds[2][0], teams["D"])

        self._play(store, rounds, 0, teams["C"])
        result = self._play(store, rounds, 1, teams["C"])

        assert result.eliminated_missed_pick == 1
        assert result.eliminated_no_available_pick == 0
        assert result.future_picks_deleted == 1
        entry = store.get_entry(saver)
        assert (entry.elimination_reason, entry.elimination_round_id) == (
            EliminationReason.MISSED_PICK, rounds[1][0]
        )

    def test_used_teams_only_count_earlier_rounds(self, store):
        teams, rounds = self._schedule(store, "CDXY", [("C", "X"), ("C", "D"), ("D", "Y")])
        entry = store.add_entry(store.add_pool("Saver"), "user-saver")
        store.add_pick(entry, rounds[0][0], teams["C"])
        store.add_pick(entry, rounds[2][0], teams["D"])

        second_round = store.get_round(rounds[1][0])
        assert store.used_team_ids(entry, before_round=second_round) == {teams["C"]}
        assert store.used_team_ids(entry) == {teams["C"], teams["D"]}


class TestManualResult:

    def test_upset_cascades(self, bracket, pool):
        store = bracket.store
        _, entries = pool
        store.add_pick(entries["carol"], bracket.rounds[0], bracket.team("East", 1))
        store.add_pick(entries["alice"], bracket.rounds[0], bracket.team("East", 16))
        start_round(bracket)

        game = bracket.game("EAST_R64_1")
        result = CascadeEngine(store).apply_manual_result(game.id, bracket.team("East", 16), 60, 70)

        assert result.message == "Completed EAST_R64_1"
        assert result.games_completed == 1
        assert result.eliminated_wrong_pick == 1
        assert result.winners_propagated == 1
        assert result.rounds_completed == 0
        assert bracket.game("EAST_R32_1").team1_id == bracket.team("East", 16)
        assert store.get_entry(entries["carol"]).is_eliminated
        assert not store.get_entry(entries["alice"]).is_eliminated

    def test_conflicting_winner_rejected(self, bracket):
        store = bracket.store
        game = bracket.game("EAST_R64_1")
        engine = CascadeEngine(store)
        engine.apply_manual_result(game.id, game.team1_id)

        result = engine.apply_manual_result(game.id, game.team2_id)

        assert result.games_updated == 0
        assert "already final with a different winner" in result.errors[0]
        assert store.get_game(game.id).winner_id == game.team1_id

    @pytest.mark.parametrize("code,winner_seed", [("EAST_R32_1", None), ("EAST_R64_1", 8)])
    def test_invalid_requests(self, bracket, code, winner_seed):
        game = bracket.game(code)
        winner = bracket.team("East", winner_seed) if winner_seed else bracket.team("East", 1)
        with pytest.raises(ValueError):
            CascadeEngine(bracket.store).apply_manual_result(game.id, winner)

    def test_unknown_game(self, store):
        with pytest.raises(ValueError, match="not found"):
            CascadeEngine(store).apply_manual_result(9999, 1)


class TestClearAdvancement:

    def test_clear_after_round_of_64(self, bracket, scoreboard, pool):
        start_round(bracket)
        CascadeEngine(bracket.store, score_source=scoreboard).run_tick()
        assert bracket.game("EAST_R32_1").team1_id is not None

        cleared = CascadeEngine(bracket.store).clear_bracket_advancement("R64")

        assert cleared == 31
        r32 = bracket.game("EAST_R32_1")
        assert (r32.team1_id, r32.team2_id, r32.status) == (None, None, GameStatus.SCHEDULED)
        # Round of 64 results stay
        assert bracket.game("EAST_R64_1").is_final

    @pytest.mark.parametrize("code", ["CHIP", "R128"])
    def test_nothing_to_clear(self, bracket, code):
        assert CascadeEngine(bracket.store).clear_bracket_advancement(code) == 0
