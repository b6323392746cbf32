from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rail_route.config import settings
from rail_route.core.engine import compute_route
from rail_route.core.errors import RouteError
from rail_route.core.models import Waypoint
from rail_route.core.query import arrival_time, format_duration, parse_trip_text
from rail_route.stations import StationDirectory, parse_coordinates


def _load_directory(path: str) -> Optional[StationDirectory]:
    if not path:
        return None
    return StationDirectory.load(Path(path))


def _resolve(text: str, directory: Optional[StationDirectory]) -> Waypoint:
    if directory is not None:
        return directory.resolve(text)
    wp = parse_coordinates(text)
    if wp is None:
        raise LookupError(f"{text!r} is not a lat,lon pair and no station directory is loaded")
    return wp


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="rail-route", description="Fastest rail path through waypoints")
    ap.add_argument("--from", dest="origin", help="Station name/code or 'lat,lon'")
    ap.add_argument("--to", dest="destination", help="Station name/code or 'lat,lon'")
    ap.add_argument("--via", action="append", default=[], help="Intermediate stop (repeatable)")
    ap.add_argument("--query", help="e.g. 'RK nach TS über TBM um 13:00'")
    ap.add_argument("--vmax", type=float, default=settings.default_max_speed_kmh, help="Train max speed, km/h")
    ap.add_argument("--strategy", choices=["shared", "segment"], default=settings.strategy)
    ap.add_argument("--stations", default=settings.stations_path, help="Station directory JSON")
    ap.add_argument("--json", action="store_true", help="Print the route as JSON")
    ap.add_argument("--log-level", default=settings.log_level)
    return ap


def main(argv: Optional[List[str]] = None) -> None:
    ap = build_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    console = Console()

    departure = None
    if args.query:
        try:
            trip = parse_trip_text(args.query)
        except ValueError as e:
            ap.error(str(e))
        stops = trip.stops
        departure = trip.departure
    else:
        if not args.origin or not args.destination:
            ap.error("either --query or both --from and --to are required")
        stops = [args.origin, *args.via, args.destination]

    try:
        directory = _load_directory(args.stations)
        waypoints = [_resolve(s, directory) for s in stops]
        result = compute_route(waypoints, args.vmax, strategy=args.strategy)
    except (LookupError, OSError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)
    except RouteError as e:
        console.print(f"[red]Route calculation failed:[/red] {escape(str(e))}")
        sys.exit(1)

    if args.json:
        print(json.dumps(result.model_dump(), indent=2))
        return

    table = Table(title=escape(f"Rail route — {waypoints[0].display} → {waypoints[-1].display}"))
    table.add_column("Segment")
    table.add_column("Distance (km)", justify="right")
    table.add_column("Travel time", justify="right")

    for s in result.segments:
        table.add_row(
            escape(f"{s.from_label} → {s.to_label}"),
            f"{s.length_m / 1000:.2f}",
            format_duration(s.travel_time_s),
        )
    console.print(table)

    summary = f"Route: {result.total_length_km:.1f} km — travel time: {format_duration(result.total_time_s)}"
    if departure is not None:
        arr = arrival_time(departure, result.total_time_s)
        summary += f" — arrival: {arr.hour}:{arr.minute:02d}"
    if len(waypoints) > 2:
        summary += f"\nVia: {', '.join(w.display for w in waypoints[1:-1])}"
    console.print(escape(summary))


if __name__ == "__main__":
    main()
