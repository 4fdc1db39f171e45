"""
Contradiction Topology
======================

Structural view of a case: statements are nodes, contradictions are edges.
Connected components are clusters of statements that conflict with each
other directly or through a chain of conflicts.

FENCE POST:
===========
This engine computes TOPOLOGY (geometry), not IMPORTANCE (judgment).

ALLOWED:
- Connected components (clustering)
- Path finding (traceability)
- Structural metrics (density, component count)

FORBIDDEN:
- Centrality measures - implies ranking of statements
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import networkx as nx

from ..contracts.events import Contradiction, ContradictionCluster, Statement


@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for the contradiction graph."""
    node_count: int
    edge_count: int
    density: float
    connected_components_count: int


class ContradictionTopology:
    """
    Wraps NetworkX for forensic/geometric operations only.

    Only statements that take part in a contradiction become nodes.
    """

    def __init__(self):
        self._graph = nx.Graph()
        self._ordinals: Dict[str, int] = {}

    def build_graph(
        self,
        statements: Tuple[Statement, ...],
        contradictions: Tuple[Contradiction, ...]
    ) -> None:
        """Replace internal graph state with the given findings."""
        self._graph = nx.Graph()
        self._ordinals = {s.statement_id: s.ordinal for s in statements}

        # One edge per pair; a pair flagged by several rules keeps every id
        for contradiction in contradictions:
            source = contradiction.source_statement_id
            target = contradiction.target_statement_id
            if self._graph.has_edge(source, target):
                self._graph[source][target]['contradiction_ids'].append(
                    contradiction.contradiction_id
                )
            else:
                self._graph.add_edge(
                    source, target, contradiction_ids=[contradiction.contradiction_id]
                )

    def clusters(self) -> Tuple[ContradictionCluster, ...]:
        """
        Connected components in a fixed order.

        Statements inside a cluster are ordered by ordinal, and clusters by
        their first statement.
        """
        found: List[ContradictionCluster] = []
        for component in nx.connected_components(self._graph):
            statement_ids = tuple(sorted(component, key=self._sort_key))
            contradiction_ids = tuple(sorted(
                contradiction_id
                for _, _, data in self._graph.subgraph(component).edges(data=True)
                for contradiction_id in data['contradiction_ids']
            ))
            found.append(ContradictionCluster(
                statement_ids=statement_ids,
                contradiction_ids=contradiction_ids,
            ))
        found.sort(key=lambda c: self._sort_key(c.statement_ids[0]))
        return tuple(found)

    def compute_metrics(self) -> GraphMetrics:
        if not self._graph:
            return GraphMetrics(0, 0, 0.0, 0)
        return GraphMetrics(
            node_count=self._graph.number_of_nodes(),
            edge_count=self._graph.number_of_edges(),
            density=nx.density(self._graph),
            connected_components_count=nx.number_connected_components(self._graph),
        )

    def get_shortest_path(self, start_id: str, end_id: str) -> Optional[List[str]]:
        """
        Chain of contradictions linking two statements.

        A purely geometric trace; it does not imply causality.
        """
        try:
            return nx.shortest_path(self._graph, source=start_id, target=end_id)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None

    def _sort_key(self, statement_id: str) -> Tuple[int, str]:
        return self._ordinals.get(statement_id, -1), statement_id
