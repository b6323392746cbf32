"""Fastest-time path search over a rail graph."""
from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from rail_route.contracts.network import Graph, NetworkEdge, NodeId, PathStep

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    path: List[PathStep]
    time_s: float

    @property
    def node_ids(self) -> List[NodeId]:
        if not self.path:
            return []
        return [self.path[0].from_] + [step.to for step in self.path]


def effective_speed_kmh(edge: NetworkEdge, max_speed_kmh: float) -> float:
    """Train speed, capped by the edge's posted limit when it has one."""
    if edge.max_speed_kmh is None or edge.max_speed_kmh <= 0:
        return max_speed_kmh
    return min(max_speed_kmh, edge.max_speed_kmh)


def edge_time_s(edge: NetworkEdge, max_speed_kmh: float) -> float:
    return (edge.length_m / 1000.0) / effective_speed_kmh(edge, max_speed_kmh) * 3600.0


def shortest_path(
    graph: Graph,
    start_id: NodeId,
    end_id: NodeId,
    max_speed_kmh: float,
) -> Optional[SearchResult]:
    """
    Dijkstra on travel time. Returns None when *end_id* cannot be reached
    from *start_id*; the same node for both yields an empty path at 0 s.
    """
    if max_speed_kmh <= 0:
        raise ValueError(f"max_speed_kmh must be positive, got {max_speed_kmh}")
    if start_id not in graph.nodes or end_id not in graph.nodes:
        return None

    dist: Dict[NodeId, float] = {start_id: 0.0}
    prev: Dict[NodeId, Tuple[NodeId, NetworkEdge]] = {}
    counter = itertools.count()
    heap: List[Tuple[float, int, NodeId]] = [(0.0, next(counter), start_id)]

    while heap:
        d, _, u = heapq.heappop(heap)
        if d > dist[u]:
            continue  # stale entry
        if u == end_id:
            break
        for edge in graph.edges_from(u):
            alt = d + edge_time_s(edge, max_speed_kmh)
            if alt < dist.get(edge.to, float("inf")):
                dist[edge.to] = alt
                prev[edge.to] = (u, edge)
                heapq.heappush(heap, (alt, next(counter), edge.to))

    if end_id not in dist:
        log.debug("No path %s -> %s", start_id, end_id)
        return None

    path: List[PathStep] = []
    cur = end_id
    while cur != start_id:
        frm, edge = prev[cur]
        path.append(PathStep(to=cur, from_=frm, edge=edge))
        cur = frm
    path.reverse()

    return SearchResult(path=path, time_s=dist[end_id])
