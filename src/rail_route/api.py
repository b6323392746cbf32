"""FastAPI REST backend for the rail routing engine."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from rail_route.config import settings
from rail_route.core.engine import compute_route
from rail_route.core.errors import (
    NetworkUnavailable,
    NoNearbyNodeError,
    NoPathError,
    NoRailDataError,
    RouteCancelled,
)
from rail_route.core.models import RouteResult, Strategy, Waypoint
from rail_route.providers.base import NetworkProvider
from rail_route.stations import Station, StationDirectory

log = logging.getLogger(__name__)

app = FastAPI(title="Rail Route", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Module-level singletons (overridable through app.dependency_overrides)
# ---------------------------------------------------------------------------
_provider: Optional[NetworkProvider] = None
_directory: Optional[StationDirectory] = None
_directory_loaded = False


def get_provider() -> NetworkProvider:
    global _provider
    if _provider is None:
        from rail_route.providers.overpass import OverpassProvider
        _provider = OverpassProvider()
    return _provider


def get_directory() -> Optional[StationDirectory]:
    global _directory, _directory_loaded
    if not _directory_loaded:
        _directory_loaded = True
        if settings.stations_path:
            try:
                _directory = StationDirectory.load(Path(settings.stations_path))
            except (OSError, ValueError) as exc:
                log.warning("Station directory unavailable (%s)", exc)
    return _directory


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class RouteIn(BaseModel):
    waypoints: List[Waypoint] = Field(..., min_length=2)
    max_speed_kmh: float = Field(default_factory=lambda: settings.default_max_speed_kmh, gt=0)
    strategy: Optional[Strategy] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health(directory: Optional[StationDirectory] = Depends(get_directory)):
    return {"status": "ok", "stations": len(directory) if directory is not None else 0}


@app.post("/route", response_model=RouteResult)
def route(req: RouteIn, provider: NetworkProvider = Depends(get_provider)):
    try:
        return compute_route(
            req.waypoints,
            req.max_speed_kmh,
            provider=provider,
            strategy=req.strategy,
        )
    except (NoRailDataError, NoNearbyNodeError, NoPathError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (NetworkUnavailable, RouteCancelled) as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.get("/stations/search", response_model=List[Station])
def search_stations(
    q: str = Query(..., description="Name, ref code or UIC fragment"),
    limit: int = Query(20, ge=1, le=100),
    directory: Optional[StationDirectory] = Depends(get_directory),
):
    if directory is None:
        return []
    return directory.search(q, limit=limit)
