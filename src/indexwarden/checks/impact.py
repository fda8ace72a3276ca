"""One-hop change-impact propagation over typed graph edges.

For a changed entity, every edge of the requested type that touches it
is followed exactly once to its other endpoint. Endpoints that are
themselves part of the change are not impacted. Impacted nodes are
never expanded further.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from indexwarden.models.graph_edge import GraphEdgeRecord
from indexwarden.repositories.protocols import KnowledgeStorage

Endpoint = Literal["from_id", "to_id"]


@dataclass
class ImpactSet:
    """Edges reaching outside the change, keyed by the outside node."""

    incoming: dict[str, GraphEdgeRecord] = field(
        default_factory=lambda: dict[str, GraphEdgeRecord]()
    )
    outgoing: dict[str, GraphEdgeRecord] = field(
        default_factory=lambda: dict[str, GraphEdgeRecord]()
    )

    def __bool__(self) -> bool:
        return bool(self.incoming or self.outgoing)

    def merge(self, other: ImpactSet) -> None:
        for key, edge in other.incoming.items():
            self.incoming.setdefault(key, edge)
        for key, edge in other.outgoing.items():
            self.outgoing.setdefault(key, edge)


def collect_impacted(
    edges: Iterable[GraphEdgeRecord],
    endpoint: Endpoint,
    changed_ids: set[str],
) -> dict[str, GraphEdgeRecord]:
    """Other endpoints of *edges* that fall outside *changed_ids*.

    First edge seen per endpoint wins; order follows *edges*.
    """
    impacted: dict[str, GraphEdgeRecord] = {}
    for edge in edges:
        other = getattr(edge, endpoint)
        if other and other not in changed_ids:
            impacted.setdefault(other, edge)
    return impacted


async def one_hop_impacts(
    storage: KnowledgeStorage,
    entity_id: str,
    edge_type: str,
    changed_ids: set[str],
    *,
    incoming: bool = True,
    outgoing: bool = True,
) -> ImpactSet:
    """Neighbours of *entity_id* across *edge_type* edges, one hop."""
    impacts = ImpactSet()
    if incoming:
        edges = await storage.get_graph_edges(
            to_ids=[entity_id], edge_types=[edge_type]
        )
        impacts.incoming = collect_impacted(edges, "from_id", changed_ids)
    if outgoing:
        edges = await storage.get_graph_edges(
            from_ids=[entity_id], edge_types=[edge_type]
        )
        impacts.outgoing = collect_impacted(edges, "to_id", changed_ids)
    return impacts
