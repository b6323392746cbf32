"""Failure taxonomy for a route computation.

Every error here is terminal for the request that raised it; no partial
route is ever returned.
"""
from __future__ import annotations

from typing import Optional, Sequence

from rail_route.contracts.network import BBox


class RouteError(Exception):
    """Base class for all routing failures."""


class NetworkUnavailable(RouteError):
    def __init__(self, endpoints: Sequence[str], last_error: Optional[Exception] = None):
        self.endpoints = list(endpoints)
        self.last_error = last_error
        super().__init__(
            f"Rail network could not be fetched from {len(self.endpoints)} endpoint(s); "
            f"last error: {last_error}"
        )


class NoRailDataError(RouteError):
    def __init__(self, bbox: BBox):
        self.bbox = bbox
        s, w, n, e = bbox
        super().__init__(f"No rail data found in bbox ({s:.4f},{w:.4f},{n:.4f},{e:.4f})")


class NoNearbyNodeError(RouteError):
    def __init__(self, label: str):
        self.label = label
        super().__init__(f"No rail node near waypoint {label!r}")


class NoPathError(RouteError):
    def __init__(self, from_label: str, to_label: str):
        self.from_label = from_label
        self.to_label = to_label
        super().__init__(f"No rail path between {from_label!r} and {to_label!r}")


class RouteCancelled(RouteError):
    """The caller abandoned the computation."""
