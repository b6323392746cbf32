import pytest

from rail_route.contracts.network import Graph, NetworkEdge, NetworkNode
from rail_route.core.search import edge_time_s, effective_speed_kmh, shortest_path


def _graph(edges, node_ids):
    """edges: (u, v, length_m, maxspeed) undirected."""
    nodes = {n: NetworkNode(n, 0.0, 0.0) for n in node_ids}
    adj = {}
    for i, (u, v, length, vmax) in enumerate(edges):
        adj.setdefault(u, []).append(NetworkEdge(v, length, f"w{i}", vmax))
        adj.setdefault(v, []).append(NetworkEdge(u, length, f"w{i}", vmax))
    return Graph(nodes=nodes, adjacency=adj)


def test_capped_edge_scenario():
    g = _graph([("A", "B", 1000.0, None), ("B", "C", 2000.0, 50.0)], "ABC")
    res = shortest_path(g, "A", "C", 100.0)
    assert res.time_s == pytest.approx(36.0 + 144.0)
    assert [s.to for s in res.path] == ["B", "C"]
    assert [s.from_ for s in res.path] == ["A", "B"]
    assert res.node_ids == ["A", "B", "C"]


def test_uncapped_time_is_length_over_speed():
    g = _graph(
        [("A", "B", 1500.0, None), ("B", "D", 2500.0, None), ("A", "C", 1000.0, None), ("C", "D", 4000.0, None)],
        "ABCD",
    )
    res = shortest_path(g, "A", "D", 80.0)
    # shortest distance is A-B-D = 4 km
    assert res.node_ids == ["A", "B", "D"]
    assert res.time_s == pytest.approx(4.0 / 80.0 * 3600)


def test_capping_never_makes_a_route_faster():
    base = [("A", "B", 1500.0, None), ("B", "D", 2500.0, None), ("A", "C", 1000.0, None), ("C", "D", 4000.0, None)]
    uncapped = shortest_path(_graph(base, "ABCD"), "A", "D", 120.0).time_s

    on_path = [("A", "B", 1500.0, 30.0)] + base[1:]
    off_path = base[:3] + [("C", "D", 4000.0, 30.0)]

    assert shortest_path(_graph(on_path, "ABCD"), "A", "D", 120.0).time_s > uncapped
    assert shortest_path(_graph(off_path, "ABCD"), "A", "D", 120.0).time_s == pytest.approx(uncapped)


def test_slow_short_track_loses_to_fast_long_track():
    g = _graph([("A", "B", 1000.0, 10.0), ("A", "C", 1000.0, None), ("C", "B", 1000.0, None)], "ABC")
    res = shortest_path(g, "A", "B", 100.0)
    assert res.node_ids == ["A", "C", "B"]
    assert res.time_s == pytest.approx(72.0)


def test_disconnected_components_give_none():
    g = _graph([("A", "B", 100.0, None), ("C", "D", 100.0, None)], "ABCD")
    assert shortest_path(g, "A", "D", 100.0) is None
    assert shortest_path(g, "A", "B", 100.0) is not None


def test_unknown_endpoint_gives_none():
    g = _graph([("A", "B", 100.0, None)], "AB")
    assert shortest_path(g, "A", "Z", 100.0) is None


def test_same_start_and_end():
    g = _graph([("A", "B", 100.0, None)], "AB")
    res = shortest_path(g, "A", "A", 100.0)
    assert res.path == []
    assert res.time_s == 0.0


def test_zero_length_edge_costs_nothing():
    g = _graph([("A", "B", 0.0, None), ("B", "C", 1000.0, None)], "ABC")
    res = shortest_path(g, "A", "C", 60.0)
    assert res.time_s == pytest.approx(60.0)


def test_non_positive_limit_is_ignored():
    edge = NetworkEdge("B", 1000.0, "w", 0.0)
    assert effective_speed_kmh(edge, 100.0) == 100.0
    assert edge_time_s(edge, 100.0) == pytest.approx(36.0)


def test_speed_must_be_positive():
    g = _graph([("A", "B", 100.0, None)], "AB")
    with pytest.raises(ValueError):
        shortest_path(g, "A", "B", 0.0)
