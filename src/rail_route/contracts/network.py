from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

NodeId = str

# (south, west, north, east) in degrees
BBox = Tuple[float, float, float, float]


@dataclass(frozen=True)
class NetworkNode:
    id: NodeId
    lat: float
    lon: float


@dataclass(frozen=True)
class NetworkEdge:
    to: NodeId
    length_m: float
    way_id: str
    max_speed_kmh: Optional[float] = None  # None => no posted limit


@dataclass(frozen=True)
class RawWay:
    id: str
    node_ids: Tuple[NodeId, ...]
    max_speed_kmh: Optional[float] = None


@dataclass(frozen=True)
class RailNetwork:
    """Raw nodes + ways as returned by a network provider for one bbox."""

    nodes: Dict[NodeId, NetworkNode]
    ways: List[RawWay]


@dataclass(frozen=True)
class PathStep:
    to: NodeId
    from_: NodeId
    edge: NetworkEdge


@dataclass(frozen=True)
class Graph:
    nodes: Dict[NodeId, NetworkNode]
    adjacency: Dict[NodeId, List[NetworkEdge]] = field(default_factory=dict)

    def edges_from(self, node_id: NodeId) -> List[NetworkEdge]:
        return self.adjacency.get(node_id, [])

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self.adjacency.values())
