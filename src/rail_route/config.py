"""Centralized settings for the rail-route engine."""
from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "RAIL_ROUTE_"}

    # Overpass interpreters, tried in order
    overpass_endpoints: List[str] = [
        "https://overpass-api.de/api/interpreter",
        "https://overpass.kumi.systems/api/interpreter",
        "https://overpass.openstreetmap.fr/api/interpreter",
    ]
    overpass_timeout_s: int = 60
    fetch_tries: int = 2              # attempts per endpoint
    fetch_backoff_s: float = 1.5      # fixed wait between attempts
    user_agent: str = "rail-route/0.1"

    # "shared" = one graph for the whole trip, "segment" = one graph per leg
    strategy: str = "shared"
    shared_pad_km: float = 25.0
    segment_pad_km: float = 12.0

    default_max_speed_kmh: float = 120.0
    max_segment_workers: int = 4

    # Station directory JSON; empty string means no directory
    stations_path: str = ""

    log_level: str = "INFO"


settings = Settings()
