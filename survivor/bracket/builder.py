"""
Bracket graph builder.

Materializes the full 63-game bracket in the store before any result exists:
backfills identity onto the 32 seeded Round-of-64 games, recreates the 31
empty downstream games and wires every advancement edge. Safe to re-run.
"""
import sqlite3
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from survivor.bracket.graph import BracketGraph, build_bracket_graph
from survivor.bracket.structure import (
    MIN_R64_GAMES,
    MIN_ROUNDS,
    MIN_TEAMS,
    REGIONS,
    bracket_position,
    build_round_id_map,
    matchup_code,
    placeholder_tipoff,
    r64_slot_for_seeds,
    round_code_from_name,
)
from survivor.exceptions import MutationError, PreconditionError
from survivor.store.db import PoolStore
from survivor.utils.observability import Logger, get_metrics

logger = Logger(__name__)


@dataclass
class BuildResult:
    r64_backfilled: int = 0
    games_created: int = 0
    advancements_wired: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict:
        return {
            "r64_backfilled": self.r64_backfilled,
            "games_created": self.games_created,
            "advancements_wired": self.advancements_wired,
            "errors": list(self.errors),
        }


class BracketBuilder:
    """
    Build the bracket graph into the store.

    Example:
        result = BracketBuilder(store).generate()
        assert result.games_created == 31
    """

    def __init__(self, store: PoolStore):
        self.store = store

    def _check_preconditions(self, rounds, r64_games) -> List[str]:
        errors = []

        team_count = self.store.count_teams()
        if team_count < MIN_TEAMS:
            errors.append(str(PreconditionError("teams", team_count, MIN_TEAMS)))

        if len(rounds) < MIN_ROUNDS:
            errors.append(str(PreconditionError("rounds", len(rounds), MIN_ROUNDS)))

        if len(r64_games) < MIN_R64_GAMES:
            errors.append(
                str(PreconditionError("Round of 64 games with both teams", len(r64_games), MIN_R64_GAMES))
            )

        seeds_by_region: Dict[str, set] = {region: set() for region in REGIONS}
        for team in self.store.list_teams():
            seeds_by_region.setdefault(team.region, set()).add(team.seed)
        for region in REGIONS:
            missing = sorted(set(range(1, 17)) - seeds_by_region[region])
            if missing and team_count >= MIN_TEAMS:
                errors.append(str(PreconditionError(f"{region} is missing seeds {missing}")))

        return errors

    def _backfill_r64(self, r64_games, result: BuildResult) -> Dict[str, int]:
        """Stamp matchup code and position on each seeded R64 game."""
        row_ids: Dict[str, int] = {}
        for game in r64_games:
            region = game["team1_region"]
            slot = r64_slot_for_seeds(game["team1_seed"], game["team2_seed"])
            if slot is None or region not in REGIONS:
                result.errors.append(
                    f"Game {game['id']}: cannot place seeds "
                    f"{game['team1_seed']}/{game['team2_seed']} in {region}"
                )
                continue

            code = matchup_code("R64", slot, region)
            try:
                self.store.backfill_game_identity(game["id"], code, bracket_position(slot), "R64")
            except sqlite3.Error as e:
                result.errors.append(str(MutationError("Backfill R64", code, e)))
                continue
            row_ids[code] = game["id"]
            result.r64_backfilled += 1
        return row_ids

    def _insert_shells(
        self,
        graph: BracketGraph,
        rounds_by_id: Dict,
        round_ids: Dict[Tuple[str, Optional[str]], int],
        row_ids: Dict[str, int],
        result: BuildResult,
    ) -> None:
        # Nodes are ordered round by round, so parents always exist before children
        for node in graph:
            if node.round_code == "R64":
                continue

            round_id = round_ids.get((node.round_code, node.region))
            if round_id is None:
                where = f"{node.round_code} {node.region}" if node.region else node.round_code
                result.errors.append(f"No round for {where}")
                continue

            parent_a = row_ids.get(graph[node.parent_a].code)
            parent_b = row_ids.get(graph[node.parent_b].code)
            try:
                row_ids[node.code] = self.store.insert_shell_game(
                    round_id=round_id,
                    matchup_code=node.code,
                    bracket_position=bracket_position(node.slot),
                    tournament_round=node.round_code,
                    parent_game_a_id=parent_a,
                    parent_game_b_id=parent_b,
                    game_datetime=placeholder_tipoff(rounds_by_id[round_id].date, node.slot),
                )
            except sqlite3.Error as e:
                result.errors.append(str(MutationError("Insert", node.code, e)))
                continue
            result.games_created += 1

    def _wire(self, graph: BracketGraph, row_ids: Dict[str, int], result: BuildResult) -> None:
        for node in graph:
            if node.is_championship:
                continue
            source_id = row_ids.get(node.code)
            if source_id is None:
                continue
            target = graph[node.advances_to]
            target_id = row_ids.get(target.code)
            if target_id is None:
                result.errors.append(f"No advancement target for {node.code}")
                continue
            try:
                self.store.wire_advancement(source_id, target_id, node.advances_to_slot)
            except sqlite3.Error as e:
                result.errors.append(str(MutationError("Wire", node.code, e)))
                continue
            result.advancements_wired += 1

    def generate(self, f4_pairings: Optional[Sequence[Tuple[str, str]]] = None) -> BuildResult:
        """
        Build or rebuild the bracket.

        Args:
            f4_pairings: Two (region, region) pairs for the Final Four.
                Defaults to East/West and South/Midwest.

        Returns:
            BuildResult with counts and per-item errors. Never raises for a
            single failed row.
        """
        result = BuildResult()
        metrics = get_metrics()

        try:
            graph = build_bracket_graph(f4_pairings)
        except ValueError as e:
            result.errors.append(str(e))
            metrics.bracket_builds.labels(status="failed").inc()
            return result

        rounds = self.store.list_rounds()
        r64_round_ids = [r.id for r in rounds if round_code_from_name(r.name) == "R64"]
        r64_games = self.store.seeded_games(r64_round_ids)

        result.errors.extend(self._check_preconditions(rounds, r64_games))
        if result.errors:
            logger.log_warning("bracket_preconditions_failed", errors=result.errors)
            metrics.bracket_builds.labels(status="failed").inc()
            return result

        round_ids = build_round_id_map(rounds)
        rounds_by_id = {r.id: r for r in rounds}

        row_ids = self._backfill_r64(r64_games, result)
        self.store.reset_shell_games()
        self._insert_shells(graph, rounds_by_id, round_ids, row_ids, result)
        self._wire(graph, row_ids, result)

        status = "success" if result.ok else "partial"
        metrics.bracket_builds.labels(status=status).inc()
        logger.log_event(
            "bracket_generated",
            status=status,
            r64_backfilled=result.r64_backfilled,
            games_created=result.games_created,
            advancements_wired=result.advancements_wired,
            errors=len(result.errors),
        )
        return result
