import threading
import time

import pytest

from rail_route.core.engine import compute_route, run_engine, stitch_polyline
from rail_route.core.errors import NoPathError, NoRailDataError, RouteCancelled
from rail_route.core.geo import haversine_m
from rail_route.core.models import GeoPoint, RouteRequest, SegmentResult, Waypoint
from rail_route.providers.static import StaticNetworkProvider

# ---------- Fixtures

LINE = {f"n{i}": (49.0, 8.40 + 0.02 * i) for i in range(6)}
ISLAND = {"m0": (49.5, 8.40), "m1": (49.5, 8.42)}


@pytest.fixture
def provider() -> StaticNetworkProvider:
    return StaticNetworkProvider.from_mapping(
        {**LINE, **ISLAND},
        {
            "w1": (("n0", "n1", "n2", "n3"), None),
            "w2": (("n3", "n4", "n5"), 80.0),
            "w9": (("m0", "m1"), None),
        },
    )


A = Waypoint(lat=49.001, lon=8.400, label="A")
B = Waypoint(lat=49.000, lon=8.461, label="B")
C = Waypoint(lat=49.000, lon=8.500, label="C")
ISLE = Waypoint(lat=49.500, lon=8.401, label="Isle")


def _hop_m() -> float:
    return haversine_m(49.0, 8.40, 49.0, 8.42)


# ---------- Shared graph


def test_shared_route_totals(provider):
    res = compute_route([A, B, C], 120.0, provider=provider, strategy="shared")

    assert [(s.from_label, s.to_label) for s in res.segments] == [("A", "B"), ("B", "C")]
    assert len(provider.requests) == 1

    hop = _hop_m()
    leg1 = 3 * hop / 1000 / 120 * 3600
    leg2 = 2 * hop / 1000 / 80 * 3600
    assert res.segments[0].travel_time_s == pytest.approx(leg1)
    assert res.segments[1].travel_time_s == pytest.approx(leg2)
    assert res.total_time_s == pytest.approx(leg1 + leg2)
    assert res.total_length_m == pytest.approx(5 * hop)


def test_stitched_polyline_drops_joint_vertex(provider):
    res = compute_route([A, B, C], 120.0, provider=provider, strategy="shared")

    assert len(res.segments[0].coordinates) == 4
    assert len(res.segments[1].coordinates) == 3
    assert len(res.polyline) == 6
    assert (res.polyline[0].lat, res.polyline[0].lon) == pytest.approx((49.0, 8.40))
    assert (res.polyline[-1].lat, res.polyline[-1].lon) == pytest.approx((49.0, 8.50))
    for a, b in zip(res.polyline, res.polyline[1:]):
        assert a != b


def test_segment_length_follows_polyline(provider):
    res = compute_route([A, C], 120.0, provider=provider, strategy="shared")
    (seg,) = res.segments
    pts = seg.coordinates
    expected = sum(haversine_m(p.lat, p.lon, q.lat, q.lon) for p, q in zip(pts, pts[1:]))
    assert seg.length_m == pytest.approx(expected)


def test_waypoints_on_same_node_give_zero_leg(provider):
    near_a = Waypoint(lat=49.0005, lon=8.4001, label="A2")
    res = compute_route([A, near_a, C], 100.0, provider=provider, strategy="shared")
    assert res.segments[0].travel_time_s == 0.0
    assert res.segments[0].length_m == 0.0
    assert len(res.polyline) == 6


def test_no_path_between_components(provider):
    with pytest.raises(NoPathError) as exc:
        compute_route([A, ISLE], 120.0, provider=provider, strategy="shared")
    assert exc.value.from_label == "A"
    assert exc.value.to_label == "Isle"


def test_empty_network_fails_before_snapping():
    empty = StaticNetworkProvider([], [])
    with pytest.raises(NoRailDataError):
        compute_route([A, C], 120.0, provider=empty, strategy="shared")
    assert len(empty.requests) == 1


def test_rejects_bad_arguments(provider):
    with pytest.raises(ValueError):
        compute_route([A], 120.0, provider=provider)
    with pytest.raises(ValueError):
        compute_route([A, C], 0.0, provider=provider)
    with pytest.raises(ValueError):
        compute_route([A, C], 100.0, provider=provider, strategy="bogus")


def test_run_engine_takes_a_request(provider):
    req = RouteRequest(waypoints=[A, C], max_speed_kmh=120.0, strategy="segment")
    res = run_engine(req, provider=provider)
    assert res.strategy == "segment"
    assert len(res.segments) == 1


# ---------- Per-segment graphs


def test_segment_strategy_matches_shared_on_dense_network(provider):
    shared = compute_route([A, B, C], 120.0, provider=provider, strategy="shared")
    per_leg = compute_route([A, B, C], 120.0, provider=provider, strategy="segment")

    assert len(provider.requests) == 1 + 2
    assert per_leg.total_time_s == pytest.approx(shared.total_time_s)
    assert per_leg.polyline == shared.polyline


class _SlowFirstLeg(StaticNetworkProvider):
    def fetch_network(self, bbox, cancel=None):
        if bbox[1] < 8.30:  # only the A-B leg box reaches this far west
            time.sleep(0.2)
        return super().fetch_network(bbox, cancel)


def test_segment_results_keep_waypoint_order():
    slow = _SlowFirstLeg.from_mapping(
        LINE, {"w1": (("n0", "n1", "n2", "n3"), None), "w2": (("n3", "n4", "n5"), 80.0)}
    )
    res = compute_route([A, B, C], 120.0, provider=slow, strategy="segment", max_workers=2)
    assert [s.from_label for s in res.segments] == ["A", "B"]


def test_segment_failure_names_its_leg(provider):
    with pytest.raises(NoPathError) as exc:
        compute_route([A, C, ISLE], 120.0, provider=provider, strategy="segment")
    assert (exc.value.from_label, exc.value.to_label) == ("C", "Isle")


def test_segment_empty_leg_is_no_rail_data(provider):
    k1 = Waypoint(lat=-30.0, lon=20.0, label="Karoo 1")
    k2 = Waypoint(lat=-30.1, lon=20.1, label="Karoo 2")
    with pytest.raises(NoRailDataError):
        compute_route([A, C, k1, k2], 120.0, provider=provider, strategy="segment")


# ---------- Cancellation


def test_cancelled_before_start(provider):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(RouteCancelled):
        compute_route([A, C], 120.0, provider=provider, cancel=cancel)
    assert provider.requests == []


class _AbandoningProvider(StaticNetworkProvider):
    def __init__(self, nodes, ways, cancel):
        super().__init__(nodes, ways)
        self.cancel = cancel

    def fetch_network(self, bbox, cancel=None):
        net = super().fetch_network(bbox, cancel)
        self.cancel.set()
        return net


@pytest.mark.parametrize("strategy", ["shared", "segment"])
def test_cancelled_mid_flight(provider, strategy):
    cancel = threading.Event()
    abandoning = _AbandoningProvider(provider.nodes.values(), provider.ways, cancel)
    with pytest.raises(RouteCancelled):
        compute_route([A, B, C], 120.0, provider=abandoning, strategy=strategy, cancel=cancel)


class _StuckProvider(StaticNetworkProvider):
    """Every fetch hangs like a slow Overpass request and ignores cancel."""

    def fetch_network(self, bbox, cancel=None):
        time.sleep(2.0)
        return super().fetch_network(bbox, None)


def test_cancel_abandons_fetches_in_flight(provider):
    stuck = _StuckProvider(provider.nodes.values(), provider.ways)
    cancel = threading.Event()
    threading.Timer(0.2, cancel.set).start()

    t0 = time.monotonic()
    with pytest.raises(RouteCancelled):
        compute_route([A, B, C], 120.0, provider=stuck, strategy="segment", cancel=cancel)
    assert time.monotonic() - t0 < 1.0


# ---------- Stitching


def test_stitch_keeps_distinct_joint_points():
    p = [GeoPoint(lat=0, lon=x) for x in range(4)]
    segs = [
        SegmentResult(from_label="a", to_label="b", travel_time_s=1, length_m=1, coordinates=p[:2]),
        SegmentResult(from_label="b", to_label="c", travel_time_s=1, length_m=1, coordinates=p[2:]),
    ]
    assert stitch_polyline(segs) == p


# ---------- Offline provider clipping


def test_stray_node_is_not_served():
    stray = StaticNetworkProvider.from_mapping(
        {"a": (49.0, 8.40), "b": (49.0, 8.42), "lone": (49.00005, 8.40005)},
        {"w": (("a", "b"), None)},
    )
    net = stray.fetch_network((48.9, 8.3, 49.1, 8.5))
    assert list(net.nodes) == ["a", "b"]

    a = Waypoint(lat=49.00005, lon=8.40006, label="A")
    b = Waypoint(lat=49.0, lon=8.42, label="B")
    res = compute_route([a, b], 100.0, provider=stray, strategy="shared")
    assert len(res.polyline) == 2
