"""Rail graph construction from raw nodes/ways and waypoint snapping."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from rail_route.contracts.network import Graph, NetworkEdge, NetworkNode, NodeId, RawWay
from rail_route.core.geo import haversine_m

log = logging.getLogger(__name__)


def build_graph(nodes: Mapping[NodeId, NetworkNode], ways: Iterable[RawWay]) -> Graph:
    """
    Build an undirected graph: each consecutive node pair of a way becomes a
    forward and a reverse edge with the same length, way id and speed limit.

    Pairs touching a node outside *nodes* are skipped; ways clipped at the
    query bbox routinely reference such nodes.
    """
    graph_nodes: Dict[NodeId, NetworkNode] = dict(nodes)
    adjacency: Dict[NodeId, List[NetworkEdge]] = {}
    skipped = 0

    def add_edge(u: NodeId, v: NodeId, length_m: float, way: RawWay) -> None:
        adjacency.setdefault(u, []).append(
            NetworkEdge(to=v, length_m=length_m, way_id=way.id, max_speed_kmh=way.max_speed_kmh)
        )

    for way in ways:
        ids = way.node_ids
        for i in range(len(ids) - 1):
            a = graph_nodes.get(ids[i])
            b = graph_nodes.get(ids[i + 1])
            if a is None or b is None:
                skipped += 1
                continue
            length_m = haversine_m(a.lat, a.lon, b.lat, b.lon)
            add_edge(a.id, b.id, length_m, way)
            add_edge(b.id, a.id, length_m, way)

    graph = Graph(nodes=graph_nodes, adjacency=adjacency)
    log.debug(
        "Graph built: %d nodes, %d directed edges (%d clipped pairs skipped)",
        len(graph_nodes), graph.edge_count, skipped,
    )
    return graph


def nearest_node(nodes: Mapping[NodeId, NetworkNode], point) -> Optional[NetworkNode]:
    """Linear scan for the node closest to *point*; first one wins on ties."""
    best: Optional[NetworkNode] = None
    best_d = float("inf")
    for node in nodes.values():
        d = haversine_m(node.lat, node.lon, point.lat, point.lon)
        if d < best_d:
            best_d = d
            best = node
    return best
