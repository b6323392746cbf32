from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Strategy = Literal["shared", "segment"]


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class StationInfo(BaseModel):
    """Source-station metadata carried by a waypoint picked from the directory."""

    id: Optional[str] = None
    name: str
    ref: str = ""        # railway:ref (short code, e.g. DS100 "RK")
    uic: str = ""
    operator: str = ""
    network: str = ""

    @property
    def display(self) -> str:
        return f"{self.name} [{self.ref}]" if self.ref else self.name


class Waypoint(GeoPoint):
    label: str = ""
    station: Optional[StationInfo] = None

    @property
    def display(self) -> str:
        return self.label or f"{self.lat:.5f},{self.lon:.5f}"


class RouteRequest(BaseModel):
    """Immutable input to one route computation."""

    model_config = ConfigDict(frozen=True)

    waypoints: List[Waypoint] = Field(..., min_length=2)
    max_speed_kmh: float = Field(..., gt=0)
    strategy: Strategy = "shared"


class SegmentResult(BaseModel):
    from_label: str
    to_label: str
    travel_time_s: float
    length_m: float
    coordinates: List[GeoPoint] = []


class RouteResult(BaseModel):
    segments: List[SegmentResult]
    total_time_s: float
    total_length_m: float
    polyline: List[GeoPoint] = []
    strategy: Strategy = "shared"

    @field_validator("polyline")
    @classmethod
    def _no_repeated_vertices(cls, v: List[GeoPoint]) -> List[GeoPoint]:
        for a, b in zip(v, v[1:]):
            if a == b:
                raise ValueError("polyline contains repeated consecutive points")
        return v

    @property
    def total_length_km(self) -> float:
        return self.total_length_m / 1000.0
