"""Geo helpers: great-circle distance and query bounding boxes."""
from __future__ import annotations

from math import atan2, cos, radians, sin, sqrt
from typing import Iterable

from rail_route.contracts.network import BBox

EARTH_RADIUS_M = 6_371_000.0
KM_PER_DEGREE = 111.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres between two WGS-84 points."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    a = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(a), sqrt(1 - a))


def distance_m(a, b) -> float:
    """Distance between two objects exposing ``lat`` / ``lon``."""
    return haversine_m(a.lat, a.lon, b.lat, b.lon)


def polyline_length_m(points) -> float:
    return sum(distance_m(points[i], points[i + 1]) for i in range(len(points) - 1))


def bbox_from_points(points: Iterable, pad_km: float) -> BBox:
    """
    Smallest (south, west, north, east) box around *points*, grown on every
    side by *pad_km* (converted with a flat 111 km per degree).
    """
    pts = list(points)
    if not pts:
        raise ValueError("bbox_from_points needs at least one point")

    pad_deg = pad_km / KM_PER_DEGREE
    south = min(p.lat for p in pts) - pad_deg
    north = max(p.lat for p in pts) + pad_deg
    west = min(p.lon for p in pts) - pad_deg
    east = max(p.lon for p in pts) + pad_deg

    return (
        max(-90.0, south),
        max(-180.0, west),
        min(90.0, north),
        min(180.0, east),
    )


def in_bbox(lat: float, lon: float, bbox: BBox) -> bool:
    s, w, n, e = bbox
    return s <= lat <= n and w <= lon <= e
