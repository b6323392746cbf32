"""Station directory: OSM station nodes used to turn text into waypoints."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from rail_route.core.models import StationInfo, Waypoint

log = logging.getLogger(__name__)

_COORD = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


class Station(StationInfo):
    lat: float
    lon: float

    def to_waypoint(self) -> Waypoint:
        info = StationInfo(**self.model_dump(exclude={"lat", "lon"}))
        return Waypoint(lat=self.lat, lon=self.lon, label=self.display, station=info)


def parse_coordinates(text: str) -> Optional[Waypoint]:
    """``"48.99,8.40"`` -> Waypoint; None when *text* is not a lat,lon pair."""
    m = _COORD.match(text)
    if not m:
        return None
    return Waypoint(lat=float(m.group(1)), lon=float(m.group(2)), label=text.strip())


class StationDirectory:
    def __init__(self, stations: List[Station]):
        self.stations = stations

    def __len__(self) -> int:
        return len(self.stations)

    @classmethod
    def from_osm(cls, doc: Dict[str, Any]) -> "StationDirectory":
        stations: List[Station] = []
        for el in doc.get("elements") or []:
            tags = el.get("tags") or {}
            if el.get("type") != "node" or not tags.get("name"):
                continue
            if el.get("lat") is None or el.get("lon") is None:
                continue
            stations.append(
                Station(
                    id=str(el.get("id")),
                    name=tags["name"],
                    lat=float(el["lat"]),
                    lon=float(el["lon"]),
                    ref=tags.get("railway:ref", ""),
                    uic=tags.get("uic_ref", ""),
                    operator=tags.get("operator", ""),
                    network=tags.get("network", ""),
                )
            )
        return cls(stations)

    @classmethod
    def load(cls, path: Path) -> "StationDirectory":
        doc = json.loads(Path(path).read_text(encoding="utf-8"))
        directory = cls.from_osm(doc)
        log.info("Loaded %d stations from %s", len(directory), path)
        return directory

    def search(self, text: str, limit: int = 20) -> List[Station]:
        """Autocomplete: substring match on name, ref or UIC code."""
        q = (text or "").strip().lower()
        if len(q) < 2:
            return []
        hits = [
            s for s in self.stations
            if q in s.name.lower() or q in s.ref.lower() or q in s.uic.lower()
        ]
        return hits[:limit]

    def find(self, text: str) -> Optional[Station]:
        """Exact ref code first, then the first name containing *text*."""
        q = text.strip().lower()
        if not q:
            return None
        for s in self.stations:
            if s.ref and s.ref.lower() == q:
                return s
        for s in self.stations:
            if q in s.name.lower():
                return s
        return None

    def resolve(self, text: str) -> Waypoint:
        wp = parse_coordinates(text)
        if wp is not None:
            return wp
        station = self.find(text)
        if station is None:
            raise LookupError(f"Unknown station or coordinate: {text!r}")
        return station.to_waypoint()
