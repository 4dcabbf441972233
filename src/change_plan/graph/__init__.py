"""Symbol and file dependency graphs."""

from .files import build_file_graph, plan_file_groups
from .symbols import (
    SequenceResult,
    build_symbol_graph,
    cluster_subgraphs,
    cluster_symbols,
    sequence_cluster,
)

__all__ = [
    "SequenceResult",
    "build_file_graph",
    "build_symbol_graph",
    "cluster_subgraphs",
    "cluster_symbols",
    "plan_file_groups",
    "sequence_cluster",
]
