"""Route composition: bbox sizing, fetch, graph build, per-leg search, stitching."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from rail_route.config import settings
from rail_route.contracts.network import Graph, NetworkNode
from rail_route.core.errors import NoNearbyNodeError, NoPathError, NoRailDataError, RouteCancelled
from rail_route.core.geo import bbox_from_points, polyline_length_m
from rail_route.core.graph import build_graph, nearest_node
from rail_route.core.models import GeoPoint, RouteRequest, RouteResult, SegmentResult, Waypoint
from rail_route.core.search import shortest_path
from rail_route.providers.base import NetworkProvider

log = logging.getLogger(__name__)

_POLL_S = 0.1


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise RouteCancelled("route computation cancelled")


def _load_graph(
    provider: NetworkProvider,
    points: Sequence[Waypoint],
    pad_km: float,
    cancel: Optional[threading.Event],
) -> Graph:
    bbox = bbox_from_points(points, pad_km)
    net = provider.fetch_network(bbox, cancel=cancel)
    if not net.nodes:
        raise NoRailDataError(bbox)
    return build_graph(net.nodes, net.ways)


def _snap(graph: Graph, wp: Waypoint) -> NetworkNode:
    node = nearest_node(graph.nodes, wp)
    if node is None:
        raise NoNearbyNodeError(wp.display)
    return node


def route_leg(graph: Graph, a: Waypoint, b: Waypoint, max_speed_kmh: float) -> SegmentResult:
    """Snap both waypoints and search the fastest path between them on *graph*."""
    na = _snap(graph, a)
    nb = _snap(graph, b)

    res = shortest_path(graph, na.id, nb.id, max_speed_kmh)
    if res is None:
        raise NoPathError(a.display, b.display)

    coords = [GeoPoint(lat=na.lat, lon=na.lon)]
    for step in res.path:
        n = graph.nodes[step.to]
        coords.append(GeoPoint(lat=n.lat, lon=n.lon))

    # Length follows the drawn polyline, not the search's own bookkeeping
    return SegmentResult(
        from_label=a.display,
        to_label=b.display,
        travel_time_s=res.time_s,
        length_m=polyline_length_m(coords),
        coordinates=coords,
    )


def stitch_polyline(segments: Sequence[SegmentResult]) -> List[GeoPoint]:
    """Concatenate leg polylines, dropping the vertex shared at each joint."""
    out: List[GeoPoint] = []
    for seg in segments:
        for p in seg.coordinates:
            if out and out[-1] == p:
                continue
            out.append(p)
    return out


def _assemble(segments: List[SegmentResult], strategy: str) -> RouteResult:
    return RouteResult(
        segments=segments,
        total_time_s=sum(s.travel_time_s for s in segments),
        total_length_m=sum(s.length_m for s in segments),
        polyline=stitch_polyline(segments),
        strategy=strategy,
    )


def _compute_shared(
    provider: NetworkProvider,
    waypoints: Sequence[Waypoint],
    max_speed_kmh: float,
    pad_km: float,
    cancel: Optional[threading.Event],
) -> List[SegmentResult]:
    graph = _load_graph(provider, waypoints, pad_km, cancel)
    segments: List[SegmentResult] = []
    for a, b in zip(waypoints, waypoints[1:]):
        _check_cancel(cancel)
        segments.append(route_leg(graph, a, b, max_speed_kmh))
    return segments


def _segment_unit(
    provider: NetworkProvider,
    a: Waypoint,
    b: Waypoint,
    max_speed_kmh: float,
    pad_km: float,
    stop: threading.Event,
) -> SegmentResult:
    graph = _load_graph(provider, [a, b], pad_km, stop)
    _check_cancel(stop)
    return route_leg(graph, a, b, max_speed_kmh)


def _compute_per_segment(
    provider: NetworkProvider,
    waypoints: Sequence[Waypoint],
    max_speed_kmh: float,
    pad_km: float,
    cancel: Optional[threading.Event],
    max_workers: int,
) -> List[SegmentResult]:
    n = len(waypoints) - 1
    stop = threading.Event()
    results: List[Optional[SegmentResult]] = [None] * n
    errors: Dict[int, BaseException] = {}

    pool = ThreadPoolExecutor(max_workers=max(1, min(max_workers, n)), thread_name_prefix="rail-leg")
    try:
        futures = {
            pool.submit(
                _segment_unit, provider, waypoints[i], waypoints[i + 1], max_speed_kmh, pad_km, stop
            ): i
            for i in range(n)
        }
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=_POLL_S, return_when=FIRST_EXCEPTION)
            for fut in done:
                if fut.cancelled():
                    continue
                i = futures[fut]
                exc = fut.exception()
                if exc is not None:
                    errors[i] = exc
                else:
                    results[i] = fut.result()

            if errors or (cancel is not None and cancel.is_set()):
                # Abandon legs still fetching; their results are never read
                stop.set()
                break
    finally:
        pool.shutdown(wait=not stop.is_set(), cancel_futures=True)

    _check_cancel(cancel)
    if errors:
        # Report the first leg that failed on its own, not one we aborted
        real = {i: e for i, e in errors.items() if not isinstance(e, RouteCancelled)} or errors
        raise real[min(real)]
    return [r for r in results if r is not None]


def compute_route(
    waypoints: Sequence[Waypoint],
    max_speed_kmh: float,
    provider: Optional[NetworkProvider] = None,
    strategy: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
    max_workers: Optional[int] = None,
) -> RouteResult:
    """
    Compute a rail route through *waypoints* in order.

    strategy "shared" fetches one network covering every waypoint and routes
    all legs on it; "segment" fetches a smaller network per leg and runs the
    legs concurrently. Raises a ``RouteError`` subclass on any failure.
    """
    if len(waypoints) < 2:
        raise ValueError("A route needs at least two waypoints")
    if max_speed_kmh <= 0:
        raise ValueError(f"max_speed_kmh must be positive, got {max_speed_kmh}")

    strategy = strategy or settings.strategy
    if provider is None:
        from rail_route.providers.overpass import OverpassProvider
        provider = OverpassProvider()

    _check_cancel(cancel)
    wps = list(waypoints)
    log.info("Routing %d waypoint(s) at %.0f km/h (%s)", len(wps), max_speed_kmh, strategy)

    if strategy == "shared":
        segments = _compute_shared(provider, wps, max_speed_kmh, settings.shared_pad_km, cancel)
    elif strategy == "segment":
        segments = _compute_per_segment(
            provider,
            wps,
            max_speed_kmh,
            settings.segment_pad_km,
            cancel,
            max_workers if max_workers is not None else settings.max_segment_workers,
        )
    else:
        raise ValueError(f"Unknown routing strategy: {strategy!r}")

    result = _assemble(segments, strategy)
    log.info("Route: %.1f km, %.0f s over %d segment(s)", result.total_length_km, result.total_time_s, len(segments))
    return result


def run_engine(req: RouteRequest, provider: Optional[NetworkProvider] = None, cancel: Optional[threading.Event] = None) -> RouteResult:
    return compute_route(req.waypoints, req.max_speed_kmh, provider=provider, strategy=req.strategy, cancel=cancel)
