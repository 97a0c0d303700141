"""
In-memory bracket graph.

The 63 games are held in a flat arena; edges (feeder parents and the
advancement target) are integer indexes into that arena. Matchup codes are
labels only. Persistence maps node index to row id after insertion.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from survivor.bracket.structure import (
    DEFAULT_F4_PAIRINGS,
    GAMES_PER_REGION,
    NATIONAL_GAMES,
    REGIONAL_ROUNDS,
    REGIONS,
    ROUND_CODES,
    TOTAL_GAMES,
    advancement_target,
    feeder_slots,
    matchup_code,
)


@dataclass
class GameNode:
    """A single game slot in the bracket."""
    index: int
    round_code: str                     # R64 .. CHIP
    slot: int                           # 1-based within region (or national round)
    region: Optional[str] = None        # None for F4 / CHIP
    parent_a: Optional[int] = None
    parent_b: Optional[int] = None
    advances_to: Optional[int] = None
    advances_to_slot: Optional[int] = None

    @property
    def code(self) -> str:
        return matchup_code(self.round_code, self.slot, self.region)

    @property
    def is_championship(self) -> bool:
        return self.round_code == "CHIP"


@dataclass
class BracketGraph:
    nodes: List[GameNode] = field(default_factory=list)
    f4_pairings: List[Tuple[str, str]] = field(default_factory=lambda: list(DEFAULT_F4_PAIRINGS))
    _by_code: Dict[str, int] = field(default_factory=dict, repr=False)

    def add(self, round_code: str, slot: int, region: Optional[str] = None) -> GameNode:
        node = GameNode(index=len(self.nodes), round_code=round_code, slot=slot, region=region)
        self.nodes.append(node)
        self._by_code[node.code] = node.index
        return node

    def link(self, child: GameNode, parent_a: GameNode, parent_b: GameNode) -> None:
        """Feed the winners of two games into `child` (A -> slot 1, B -> slot 2)."""
        child.parent_a = parent_a.index
        child.parent_b = parent_b.index
        parent_a.advances_to, parent_a.advances_to_slot = child.index, 1
        parent_b.advances_to, parent_b.advances_to_slot = child.index, 2

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[GameNode]:
        return iter(self.nodes)

    def __getitem__(self, index: int) -> GameNode:
        return self.nodes[index]

    def get(self, code: str) -> Optional[GameNode]:
        idx = self._by_code.get(code)
        return self.nodes[idx] if idx is not None else None

    def round(self, round_code: str) -> List[GameNode]:
        return [n for n in self.nodes if n.round_code == round_code]

    @property
    def championship(self) -> GameNode:
        return self.round("CHIP")[0]

    def path_to_championship(self, index: int) -> List[GameNode]:
        """Follow advancement edges from a game to the championship."""
        path = [self.nodes[index]]
        while path[-1].advances_to is not None:
            path.append(self.nodes[path[-1].advances_to])
            if len(path) > len(ROUND_CODES):
                raise ValueError(f"Advancement cycle through {path[0].code}")
        return path

    def validate(self) -> List[str]:
        """Structural problems; empty when the graph is a proper bracket."""
        problems = []
        if len(self.nodes) != TOTAL_GAMES:
            problems.append(f"Expected {TOTAL_GAMES} games, found {len(self.nodes)}")

        targets: Dict[Tuple[int, int], str] = {}
        for node in self.nodes:
            if node.is_championship:
                if node.advances_to is not None:
                    problems.append("Championship must not advance")
                continue
            if node.advances_to is None:
                problems.append(f"{node.code} has no advancement target")
                continue
            key = (node.advances_to, node.advances_to_slot)
            if key in targets:
                problems.append(f"{node.code} and {targets[key]} feed the same slot")
            targets[key] = node.code

            target = self.nodes[node.advances_to]
            if node.region is not None and target.region is not None:
                if (target.slot, node.advances_to_slot) != advancement_target(node.slot):
                    problems.append(f"{node.code} advances into the wrong slot of {target.code}")
        return problems


def _check_f4_pairings(pairings: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
    pairings = [tuple(p) for p in pairings]
    flat = [region for pair in pairings for region in pair]
    if len(pairings) != 2 or sorted(flat) != sorted(REGIONS):
        raise ValueError(f"Final Four pairings must cover each region once: {pairings}")
    return pairings


def build_bracket_graph(f4_pairings: Optional[Sequence[Tuple[str, str]]] = None) -> BracketGraph:
    """
    Build the full 63-game bracket.

    Regional game N of round R feeds game ceil(N/2) of the next round (slot 1
    when N is odd). E8 winners meet in the Final Four per `f4_pairings`; F4
    game n feeds championship slot n.

    Raises:
        ValueError: if the pairings do not cover each region exactly once.
    """
    pairings = _check_f4_pairings(f4_pairings or DEFAULT_F4_PAIRINGS)
    graph = BracketGraph(f4_pairings=pairings)

    for round_code in REGIONAL_ROUNDS:
        for region in REGIONS:
            for slot in range(1, GAMES_PER_REGION[round_code] + 1):
                graph.add(round_code, slot, region)

    for round_code in ("F4", "CHIP"):
        for slot in range(1, NATIONAL_GAMES[round_code] + 1):
            graph.add(round_code, slot)

    for prev_code, round_code in zip(REGIONAL_ROUNDS, REGIONAL_ROUNDS[1:]):
        for region in REGIONS:
            for slot in range(1, GAMES_PER_REGION[round_code] + 1):
                a, b = feeder_slots(slot)
                graph.link(
                    graph.get(matchup_code(round_code, slot, region)),
                    graph.get(matchup_code(prev_code, a, region)),
                    graph.get(matchup_code(prev_code, b, region)),
                )

    for slot, (region_a, region_b) in enumerate(pairings, start=1):
        graph.link(
            graph.get(matchup_code("F4", slot)),
            graph.get(matchup_code("E8", 1, region_a)),
            graph.get(matchup_code("E8", 1, region_b)),
        )

    graph.link(graph.championship, graph.get("F4_1"), graph.get("F4_2"))

    return graph
