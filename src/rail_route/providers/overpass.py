"""Overpass API rail network provider."""
from __future__ import annotations

import logging
import re
import threading
from typing import Any, Dict, List, Optional, Sequence

from rail_route.config import settings
from rail_route.contracts.network import BBox, NetworkNode, RailNetwork, RawWay
from rail_route.providers.base import NetworkProvider
from rail_route.providers.http import HTTPClient

log = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)")

KMH_PER_MPH = 1.609344


def parse_maxspeed(value: Any) -> Optional[float]:
    """
    OSM ``maxspeed`` tag -> km/h.

    Takes the leading number ("80", "80;60", "50 mph"); anything without
    one ("none", "signals", "") or a non-positive number counts as absent.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        v = float(value)
        return v if v > 0 else None

    text = str(value)
    m = _LEADING_NUMBER.match(text)
    if not m:
        return None
    v = float(m.group(1))
    if "mph" in text.lower():
        v *= KMH_PER_MPH
    return v if v > 0 else None


def build_query(bbox: BBox, timeout_s: int = 60) -> str:
    s, w, n, e = bbox
    return (
        f"[out:json][timeout:{timeout_s}];"
        f'(way["railway"~"^(rail|railway)$"]({s},{w},{n},{e}); >;);'
        "out body;"
    )


def parse_elements(doc: Dict[str, Any]) -> RailNetwork:
    """Split an Overpass ``elements`` array into nodes and rail ways."""
    nodes: Dict[str, NetworkNode] = {}
    ways: List[RawWay] = []

    for el in doc.get("elements") or []:
        kind = el.get("type")
        if kind == "node":
            if el.get("lat") is None or el.get("lon") is None:
                continue
            nid = str(el["id"])
            nodes[nid] = NetworkNode(id=nid, lat=float(el["lat"]), lon=float(el["lon"]))
        elif kind == "way":
            tags = el.get("tags") or {}
            ways.append(
                RawWay(
                    id=str(el["id"]),
                    node_ids=tuple(str(n) for n in el.get("nodes") or []),
                    max_speed_kmh=parse_maxspeed(tags.get("maxspeed")),
                )
            )

    return RailNetwork(nodes=nodes, ways=ways)


class OverpassProvider(NetworkProvider):
    def __init__(
        self,
        endpoints: Optional[Sequence[str]] = None,
        client: Optional[HTTPClient] = None,
        timeout_s: Optional[int] = None,
    ):
        self.endpoints = list(endpoints if endpoints is not None else settings.overpass_endpoints)
        self.timeout_s = timeout_s if timeout_s is not None else settings.overpass_timeout_s
        self.client = client or HTTPClient(
            user_agent=settings.user_agent,
            timeout_s=self.timeout_s,
            tries=settings.fetch_tries,
            backoff_s=settings.fetch_backoff_s,
        )

    def fetch_network(self, bbox: BBox, cancel: Optional[threading.Event] = None) -> RailNetwork:
        query = build_query(bbox, self.timeout_s)
        doc = self.client.post_json(self.endpoints, query, cancel=cancel)
        net = parse_elements(doc)
        log.info(
            "Overpass bbox (%.3f,%.3f,%.3f,%.3f): %d nodes, %d ways",
            *bbox, len(net.nodes), len(net.ways),
        )
        return net
