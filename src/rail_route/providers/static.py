from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Mapping, Optional

from rail_route.contracts.network import BBox, NetworkNode, NodeId, RailNetwork, RawWay
from rail_route.core.errors import RouteCancelled
from rail_route.core.geo import in_bbox
from rail_route.providers.base import NetworkProvider


class StaticNetworkProvider(NetworkProvider):
    """
    Serves a fixed in-memory network so routing runs end-to-end without
    Overpass. Each request is clipped to its bbox the way Overpass clips:
    ways touching the box come back whole, nodes only when inside it and
    referenced by one of those ways.
    """

    def __init__(self, nodes: Iterable[NetworkNode], ways: Iterable[RawWay]):
        self.nodes: Dict[NodeId, NetworkNode] = {n.id: n for n in nodes}
        self.ways: List[RawWay] = list(ways)
        self.requests: List[BBox] = []
        self._lock = threading.Lock()

    @classmethod
    def from_mapping(cls, nodes: Mapping[str, tuple], ways: Mapping[str, tuple]) -> "StaticNetworkProvider":
        """``nodes={"a": (lat, lon)}``, ``ways={"w1": (("a", "b"), maxspeed)}``."""
        return cls(
            [NetworkNode(id=k, lat=v[0], lon=v[1]) for k, v in nodes.items()],
            [RawWay(id=k, node_ids=tuple(v[0]), max_speed_kmh=v[1]) for k, v in ways.items()],
        )

    def fetch_network(self, bbox: BBox, cancel: Optional[threading.Event] = None) -> RailNetwork:
        if cancel is not None and cancel.is_set():
            raise RouteCancelled("fetch abandoned")
        with self._lock:
            self.requests.append(bbox)

        inside = {nid for nid, n in self.nodes.items() if in_bbox(n.lat, n.lon, bbox)}
        ways = [w for w in self.ways if any(nid in inside for nid in w.node_ids)]
        # Only nodes some kept way references; strays never reach the graph
        referenced = {nid for w in ways for nid in w.node_ids}
        nodes = {nid: n for nid, n in self.nodes.items() if nid in inside and nid in referenced}
        return RailNetwork(nodes=nodes, ways=ways)
