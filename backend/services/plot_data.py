"""Build the tracker payload: diagram layout, status lines, time-space series, grid.

The clock is read exactly once here; every derived value uses that instant.
"""
from __future__ import annotations

from typing import Any

from backend.models.session import SessionState
from backend.models.timetable import Timetable, TrainService
from backend.services.layout import DEFAULT_COLOR, build_layout
from status_text import generate_status_text
from tracker import ActiveTrain, AtStation, select_active_trains, stop_time
from utils import format_time

PAD_BEFORE_MIN = 60
PAD_AFTER_MIN = 30


def build_tracker_payload(session: SessionState) -> dict[str, Any]:
    """Return everything the page needs for one tick."""
    clock = session.clock
    now = clock.current_minutes()

    if session.timetable is None:
        return _empty_payload(now, clock.live)

    timetable = session.timetable
    stations = session.stations
    services = timetable.trains
    colors = session.train_colors

    active = select_active_trains(services, now, stations)

    series, x_min, x_max = build_plot_series(timetable, stations)
    grid_rows, column_defs = build_grid(timetable, stations)

    return {
        "time": format_time(now),
        "minutes": now,
        "live": clock.live,
        "timetable": {"name": timetable.name, "date": timetable.date},
        "stations": list(stations),
        "layout": build_layout(stations, active, colors),
        "statuses": build_statuses(active, now, stations, services, colors),
        "positions": [_position_point(a, stations) for a in active.values()],
        "plot_series": series,
        "x_min": x_min,
        "x_max": x_max,
        "grid_rows": grid_rows,
        "column_defs": column_defs,
        "train_colors": dict(colors),
    }


def build_statuses(
    active: dict[str, ActiveTrain],
    now: int,
    stations: list[str],
    services: list[TrainService],
    colors: dict[str, str],
) -> list[dict[str, Any]]:
    statuses: list[dict[str, Any]] = []
    for tn, a in active.items():
        text = generate_status_text(a.train, a.position, now, stations, services)
        if text is None:
            continue
        statuses.append({
            "train_number": tn,
            "direction": a.train.direction,
            "color": colors.get(tn, DEFAULT_COLOR),
            "text": text,
        })
    return statuses


def _position_point(a: ActiveTrain, stations: list[str]) -> dict[str, Any]:
    """Current position on the station-index axis of the time-space diagram."""
    pos = a.position
    if isinstance(pos, AtStation):
        y = float(stations.index(pos.station)) if pos.station in stations else None
    else:
        y0 = stations.index(pos.from_station) if pos.from_station in stations else None
        y1 = stations.index(pos.to_station) if pos.to_station in stations else None
        y = None if y0 is None or y1 is None else y0 + (y1 - y0) * pos.progress
    return {"train": a.train.train_number, "direction": a.train.direction, "y": y}


def service_labels(timetable: Timetable) -> list[str]:
    """Unique column label per service: repeated train numbers get ' (2)', ' (3)', ..."""
    counters: dict[str, int] = {}
    labels: list[str] = []
    for train in timetable.trains:
        base = train.train_number
        counters[base] = counters.get(base, 0) + 1
        labels.append(base if counters[base] == 1 else f"{base} ({counters[base]})")
    return labels


def build_plot_series(
    timetable: Timetable,
    stations: list[str],
) -> tuple[list[dict], int, int]:
    """One series per service of [minutes, station_index] points. Returns (series, x_min, x_max)."""
    index = {name: i for i, name in enumerate(stations)}
    series: list[dict] = []
    global_min: int | None = None
    global_max: int | None = None

    for label, train in zip(service_labels(timetable), timetable.trains):
        pts: list[dict] = []
        for stop in train.stops:
            y = index.get(stop.station)
            if y is None:
                continue
            if stop.arrival is not None and stop.departure is not None:
                times = [stop.arrival, stop.departure]
            else:
                times = [stop_time(stop)]
            for t in times:
                if t is None:
                    continue
                pts.append({
                    "value": [t, y],
                    "station": stop.station,
                    "train": train.train_number,
                    "stopsAt": stop.stops_at,
                })
                global_min = t if global_min is None else min(global_min, t)
                global_max = t if global_max is None else max(global_max, t)
        if pts:
            series.append({
                "name": label,
                "train": train.train_number,
                "direction": train.direction,
                "points": pts,
            })

    x_min = max(0, (global_min or 0) - PAD_BEFORE_MIN)
    x_max = min(24 * 60, (global_max if global_max is not None else 24 * 60) + PAD_AFTER_MIN)
    return series, x_min, x_max


def build_grid(timetable: Timetable, stations: list[str]) -> tuple[list[dict], list[dict]]:
    """Station x service grid; stations where any service dwells get arr/dep rows."""
    labels = service_labels(timetable)

    # cell_map: {station: {label: {"arr": "HH:MM", "dep": "HH:MM", "pass": "1" when non-stop}}}
    cell_map: dict[str, dict[str, dict[str, str]]] = {}
    dwell_stations: set[str] = set()
    for label, train in zip(labels, timetable.trains):
        for stop in train.stops:
            bucket = cell_map.setdefault(stop.station, {}).setdefault(label, {})
            if stop.arrival is not None and stop.departure is not None:
                dwell_stations.add(stop.station)
                bucket["arr"] = format_time(stop.arrival)
                bucket["dep"] = format_time(stop.departure)
            else:
                t = stop_time(stop)
                text = format_time(t) if t is not None else ""
                bucket["arr"] = bucket["dep"] = text
            if not stop.stops_at:
                bucket["pass"] = "1"

    def cell(bucket: dict[str, str], slot: str) -> str:
        value = bucket.get(slot, "")
        if value and bucket.get("pass"):
            return f"{value} (pass)"
        return value

    grid_rows: list[dict] = []
    for station in stations:
        times = cell_map.get(station, {})
        if station in dwell_stations:
            for slot, suffix in (("arr", "arr"), ("dep", "dep")):
                row: dict[str, Any] = {"station": f"{station} ({suffix})", "_station_raw": station, "_slot": slot}
                for label in labels:
                    row[label] = cell(times.get(label, {}), slot)
                grid_rows.append(row)
        else:
            row = {"station": station, "_station_raw": station, "_slot": None}
            for label in labels:
                row[label] = cell(times.get(label, {}), "dep")
            grid_rows.append(row)

    column_defs = [
        {"field": "station", "headerName": "station", "editable": False, "width": 180},
    ] + [{"field": label, "headerName": label, "editable": False, "width": 110} for label in labels]

    return grid_rows, column_defs


def _empty_payload(now: int, live: bool) -> dict[str, Any]:
    return {
        "time": format_time(now),
        "minutes": now,
        "live": live,
        "timetable": None,
        "stations": [],
        "layout": [],
        "statuses": [],
        "positions": [],
        "plot_series": [],
        "x_min": 0,
        "x_max": 24 * 60,
        "grid_rows": [],
        "column_defs": [],
        "train_colors": {},
    }
