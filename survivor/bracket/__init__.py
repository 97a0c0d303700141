"""
Bracket structure, the in-memory game graph and the builder that persists it.
"""
from .structure import (
    REGIONS,
    ROUND_CODES,
    DEFAULT_F4_PAIRINGS,
    R64_SEED_PAIRINGS,
    round_code_from_name,
    infer_half,
    build_round_id_map,
)
from .graph import BracketGraph, GameNode, build_bracket_graph
from .builder import BracketBuilder, BuildResult

__all__ = [
    "REGIONS",
    "ROUND_CODES",
    "DEFAULT_F4_PAIRINGS",
    "R64_SEED_PAIRINGS",
    "round_code_from_name",
    "infer_half",
    "build_round_id_map",
    "BracketGraph",
    "GameNode",
    "build_bracket_graph",
    "BracketBuilder",
    "BuildResult",
]
