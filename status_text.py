from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from tracker import AtStation, Between, Position, find_next_service, is_terminus, stop_time
from utils import format_time, minutes_between, plural_minutes

if TYPE_CHECKING:
    from backend.models.timetable import TrainService

SEPARATOR = " • "


def generate_status_text(
    train: "TrainService",
    position: Optional[Position],
    now: float,
    stations: Sequence[str],
    services: Sequence["TrainService"],
) -> Optional[str]:
    """Human-readable status line for one train, or None when it is absent."""
    if position is None:
        return None
    if isinstance(position, Between):
        return _between_text(train, position, now, stations)
    return _at_station_text(train, position, now, stations, services)


def _at_station_text(train, position: AtStation, now, stations, services) -> str:
    station = position.station

    if position.waiting_for_departure:
        depart = stop_time(train.stops[0])
        wait = minutes_between(now, depart)
        return (
            f"Waiting at {station}, departing at {format_time(depart)} "
            f"(departing in {plural_minutes(wait)})"
        )

    # end of this working, at a terminus or wherever the unit waits for its next one
    if is_terminus(station, stations) or station == train.stops[-1].station:
        nxt = find_next_service(services, train.train_number, station, now)
        if nxt is None:
            return f"Terminated at {station}"
        depart = stop_time(nxt.stops[0])
        wait = minutes_between(now, depart)
        return (
            f"Waiting at {station}, next departure at {format_time(depart)} "
            f"(departing in {plural_minutes(wait)})"
        )

    index = next((i for i, s in enumerate(train.stops) if s.station == station), None)
    stop = train.stops[index] if index is not None else None
    if stop is None or stop.departure is None:
        return f"At {station}"

    wait = minutes_between(now, stop.departure)
    text = f"At {station}, departing at {format_time(stop.departure)} (in {plural_minutes(wait)})"
    if index + 1 < len(train.stops):
        text += f" → {train.stops[index + 1].station}"
    return text


def _between_text(train, position: Between, now, stations) -> str:
    to_arrival = minutes_between(now, position.arrive_time)
    if to_arrival == 0:
        arrival_text = "arriving now"
    else:
        arrival_text = f"arriving {format_time(position.arrive_time)} in {plural_minutes(to_arrival)}"

    parts: List[str] = [
        f"Traveling from {position.from_station} (departed {format_time(position.depart_time)}) "
        f"→ {position.to_station} ({arrival_text})"
    ]

    for station in _stations_passed(position, stations):
        stop = next((s for s in train.stops if s.station == station), None)
        if stop is None or stop.stops_at:
            continue
        pass_time = stop_time(stop)
        if pass_time is None:
            continue
        to_pass = minutes_between(now, pass_time)
        if to_pass > 0:
            parts.append(f"Passing {station} in {plural_minutes(to_pass)}")

    return SEPARATOR.join(parts)


def _stations_passed(position: Between, stations: Sequence[str]) -> List[str]:
    """Topology stations strictly between the two ends, in travel order."""
    if position.from_station not in stations or position.to_station not in stations:
        return []
    a = stations.index(position.from_station)
    b = stations.index(position.to_station)
    if a < b:
        return list(stations[a + 1:b])
    return list(reversed(stations[b + 1:a]))
