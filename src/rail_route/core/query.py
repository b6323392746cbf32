"""Free-text trip requests, e.g. ``RK nach TS über TBM um 13:00``."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Optional

_TO = r"(?:nach|to)"
_VIA = r"(?:über|ueber|via)"
_AT = r"(?:um|at)"
_FROM = r"(?:von|from)"

_TRIP = re.compile(
    rf"^\s*(?:{_FROM}\s+)?(\S+)\s+{_TO}\s+(\S+)((?:\s+{_VIA}\s+\S+)*)\s*(?:{_AT}\s+(\d{{1,2}}:\d{{2}}))?\s*$",
    re.IGNORECASE,
)
_VIA_ITEM = re.compile(rf"\s+{_VIA}\s+(\S+)", re.IGNORECASE)


@dataclass
class TripQuery:
    origin: str
    destination: str
    vias: List[str] = field(default_factory=list)
    departure: Optional[time] = None

    @property
    def stops(self) -> List[str]:
        return [self.origin, *self.vias, self.destination]


def parse_trip_text(text: str) -> TripQuery:
    m = _TRIP.match(text or "")
    if not m:
        raise ValueError(
            "Expected e.g. 'RK nach TU über TBM um 14:30' or 'RK to TU via TBM at 14:30'"
        )
    origin, destination, via_str, time_str = m.groups()
    vias = _VIA_ITEM.findall(via_str or "")

    departure = None
    if time_str:
        hh, mm = (int(x) for x in time_str.split(":"))
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid departure time: {time_str}")
        departure = time(hh, mm)

    return TripQuery(origin=origin, destination=destination, vias=vias, departure=departure)


def arrival_time(departure: time, total_time_s: float) -> time:
    """Departure plus travel time, wrapping past midnight."""
    start = datetime.combine(date(2000, 1, 1), departure)
    return (start + timedelta(seconds=total_time_s)).time()


def format_duration(seconds: float) -> str:
    """``4500`` -> ``"1h 15min"`` (whole hours, rounded minutes)."""
    h = int(seconds // 3600)
    m = int(round((seconds % 3600) / 60))
    if m == 60:
        h, m = h + 1, 0
    return f"{h}h {m}min"
