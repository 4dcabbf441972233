"""Dependency graph over changed symbols, clustering, and ordering."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import networkx as nx

from change_plan.tracking.diff import SymbolChange


@dataclass(slots=True, frozen=True)
class SequenceResult:
    """Ordered cluster members; ``cyclic`` marks a fallback order."""

    order: tuple[str, ...]
    cyclic: bool


def build_symbol_graph(changes: Iterable[SymbolChange]) -> nx.DiGraph:
    """
    Builds the dependency graph over the changed set.

    Nodes: changed symbol names, in change order.
    Edges: dependency -> dependent, kept only when both ends changed.
    """
    graph = nx.DiGraph()
    ordered = list(changes)
    for change in ordered:
        graph.add_node(change.name)

    for change in ordered:
        for target in change.symbol.dependency_names():
            # Recursion is not an ordering constraint
            if target == change.name:
                continue
            if target in graph:
                graph.add_edge(target, change.name)
    return graph


def cluster_symbols(graph: nx.DiGraph) -> list[set[str]]:
    """Partition nodes into weakly connected components.

    Components come out ordered by their first node in insertion order.
    """
    return [set(component) for component in nx.weakly_connected_components(graph)]


def cluster_subgraphs(graph: nx.DiGraph, clusters: Sequence[Iterable[str]]) -> list[nx.DiGraph]:
    """Split ``graph`` into one subgraph per cluster in a single pass.

    Each subgraph keeps the parent's node insertion order, which
    ``graph.subgraph`` views do not guarantee. Nodes outside every cluster
    and edges between clusters are dropped.
    """
    owner = {node: index for index, cluster in enumerate(clusters) for node in cluster}
    subgraphs = [nx.DiGraph() for _ in clusters]
    for node in graph:
        index = owner.get(node)
        if index is not None:
            subgraphs[index].add_node(node)
    for source, target in graph.edges():
        index = owner.get(source)
        if index is not None and owner.get(target) == index:
            subgraphs[index].add_edge(source, target)
    return subgraphs


def sequence_cluster(subgraph: nx.DiGraph) -> SequenceResult:
    """Topologically order a cluster, breaking ties by insertion order.

    A directed cycle does not raise: strongly connected components are
    collapsed, the condensation is ordered, and each component lists its
    members in insertion order.
    """
    position = {node: index for index, node in enumerate(subgraph)}
    try:
        order = list(nx.lexicographical_topological_sort(subgraph, key=position.__getitem__))
    except nx.NetworkXUnfeasible:
        return SequenceResult(order=_condensed_order(subgraph, position), cyclic=True)
    return SequenceResult(order=tuple(order), cyclic=False)


def _condensed_order(subgraph: nx.DiGraph, position: dict[str, int]) -> tuple[str, ...]:
    condensed = nx.condensation(subgraph)
    first_member = {
        component: min(position[node] for node in data["members"])
        for component, data in condensed.nodes(data=True)
    }
    ordered: list[str] = []
    for component in nx.lexicographical_topological_sort(condensed, key=first_member.__getitem__):
        members = condensed.nodes[component]["members"]
        ordered.extend(sorted(members, key=position.__getitem__))
    return tuple(ordered)
