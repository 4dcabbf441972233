"""File-level dependency graph and commit grouping."""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx

from change_plan.paths import canonical_path
from change_plan.tracking.diff import SymbolChange


def build_file_graph(changes: Iterable[SymbolChange]) -> nx.Graph:
    """
    Builds the undirected file graph for the changed set.

    Nodes: every file owning a change, in change order.
    Edges: a changed symbol in one file depends on a changed symbol in another.
    An edge that names its file links only that file; otherwise every file
    with a changed symbol of that name is linked.
    """
    graph = nx.Graph()
    ordered = list(changes)
    files_by_symbol: dict[str, list[str]] = {}
    for change in ordered:
        graph.add_node(change.path)
        owners = files_by_symbol.setdefault(change.name, [])
        if change.path not in owners:
            owners.append(change.path)

    for change in ordered:
        for dependency in change.symbol.dependencies:
            for edge in dependency.edges:
                owners = files_by_symbol.get(edge.symbol_name, [])
                if edge.file_path:
                    declared = canonical_path(edge.file_path, change.symbol.working_directory)
                    owners = [path for path in owners if path == declared]
                for dependency_path in owners:
                    if dependency_path != change.path:
                        graph.add_edge(dependency_path, change.path)
    return graph


def plan_file_groups(changes: Iterable[SymbolChange]) -> list[list[str]]:
    """Return files that must be committed together, one list per group.

    Groups are ordered by their first file and list files in change order.
    Files without cross-file dependencies form singleton groups.
    """
    graph = build_file_graph(changes)
    position = {node: index for index, node in enumerate(graph)}
    return [
        sorted(component, key=position.__getitem__)
        for component in nx.connected_components(graph)
    ]
