"""Project active train positions onto the 1-D station diagram.

The station axis is fixed (index 0 first), while ``Between.progress`` is
measured in the train's own direction of travel, so northbound markers are
placed at ``1 - progress`` along the section.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from tracker import ActiveTrain, AtStation, Between

STATION_MARKER_PERCENT = 50.0
DEFAULT_COLOR = "#888888"


def train_icon(train_number: str) -> str:
    if "Steam" in train_number:
        return "🚂"
    if "DMU" in train_number:
        return "🚃"
    return "🚆"


def _marker(active: ActiveTrain, percentage: float, colors: Mapping[str, str]) -> dict[str, Any]:
    train = active.train
    return {
        "train_number": train.train_number,
        "direction": train.direction,
        "percentage": percentage,
        "color": colors.get(train.train_number, DEFAULT_COLOR),
        "icon": train_icon(train.train_number),
        "arrow": "↑" if train.direction == "northbound" else "↓",
    }


def _on_section(active: ActiveTrain, upper: str, lower: str) -> bool:
    pos = active.position
    if active.train.direction == "northbound":
        return pos.from_station == lower and pos.to_station == upper
    return pos.from_station == upper and pos.to_station == lower


def build_layout(
    stations: Sequence[str],
    active: Mapping[str, ActiveTrain],
    colors: Mapping[str, str],
) -> list[dict[str, Any]]:
    """Alternating station and track slots, each with the markers placed on it."""
    slots: list[dict[str, Any]] = []
    at_station = [a for a in active.values() if isinstance(a.position, AtStation)]
    moving = [a for a in active.values() if isinstance(a.position, Between)]

    for i, station in enumerate(stations):
        slots.append({
            "type": "station",
            "name": station,
            "trains": [
                _marker(a, STATION_MARKER_PERCENT, colors)
                for a in at_station
                if a.position.station == station
            ],
        })

        if i == len(stations) - 1:
            break

        nxt = stations[i + 1]
        markers = []
        for a in moving:
            if not _on_section(a, station, nxt):
                continue
            if a.train.direction == "northbound":
                pct = (1 - a.position.progress) * 100
            else:
                pct = a.position.progress * 100
            markers.append(_marker(a, pct, colors))
        slots.append({"type": "track", "from": station, "to": nxt, "trains": markers})

    return slots
