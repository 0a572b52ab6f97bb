"""Schedule-derived train positions.

Everything here is a pure function of (timetable, stations, instant). Callers
read the clock once per tick and pass the same ``now`` (minutes since midnight)
to every function.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Union

if TYPE_CHECKING:
    from backend.models.timetable import Stop, Timetable, TrainService

logger = logging.getLogger(__name__)

# Pre-departure dwell shown at a terminus, and how long a finished train
# without a further working stays on the diagram.
DEPARTURE_LOOKAHEAD_MIN = 15
TERMINATED_GRACE_MIN = 15


class EmptyTimetableError(ValueError):
    """The timetable has no services to derive a station order from."""


@dataclass(frozen=True)
class AtStation:
    station: str
    waiting_for_departure: bool = False


@dataclass(frozen=True)
class Between:
    from_station: str
    to_station: str
    progress: float
    depart_time: int
    arrive_time: int


Position = Union[AtStation, Between]


@dataclass(frozen=True)
class ActiveTrain:
    train: "TrainService"
    position: Position


# ===================== Station topology =====================

def extract_stations(timetable: "Timetable") -> List[str]:
    """Ordered station list taken from the service with the most stops.

    The list is reversed when that service is northbound so index 0 is always
    the same terminus, whichever service produced it.
    """
    if not timetable.trains:
        raise EmptyTimetableError("Timetable has no train services.")

    longest = timetable.trains[0]
    for train in timetable.trains:
        if len(train.stops) > len(longest.stops):
            longest = train

    stations = [s.station for s in longest.stops]
    if longest.direction == "northbound":
        stations.reverse()
    return stations


def is_terminus(station: str, stations: Sequence[str]) -> bool:
    return bool(stations) and station in (stations[0], stations[-1])


# ===================== Stop times =====================

def stop_time(stop: "Stop") -> Optional[int]:
    """Departure, else arrival, else pass time."""
    for value in (stop.departure, stop.arrival, stop.time):
        if value is not None:
            return value
    return None


def start_time(train: "TrainService") -> Optional[int]:
    return stop_time(train.stops[0])


def end_time(train: "TrainService") -> Optional[int]:
    return stop_time(train.stops[-1])


def is_running(train: "TrainService", now: float) -> bool:
    start, end = start_time(train), end_time(train)
    if start is None or end is None:
        return False
    return start <= now <= end


def has_finished(train: "TrainService", now: float) -> bool:
    end = end_time(train)
    return end is not None and now > end


# ===================== Position inference =====================

def find_next_service(
    services: Sequence["TrainService"],
    train_number: str,
    from_station: str,
    after: float,
) -> Optional["TrainService"]:
    """Earliest same-numbered service leaving ``from_station`` strictly after ``after``."""
    best = None
    best_start = None
    for service in services:
        if service.train_number != train_number:
            continue
        if service.stops[0].station != from_station:
            continue
        start = start_time(service)
        if start is None or start <= after:
            continue
        if best_start is None or start < best_start:
            best, best_start = service, start
    return best


def find_train_position(
    train: "TrainService",
    now: float,
    stations: Sequence[str],
    services: Sequence["TrainService"],
) -> Optional[Position]:
    """Where ``train`` is at ``now``; None when it is not on the diagram."""
    stops = train.stops
    first, last = stops[0], stops[-1]
    start, end = stop_time(first), stop_time(last)

    if start is None or end is None:
        logger.warning(
            "Service %s (%s) has no usable time at its first or last stop; skipping",
            train.train_number,
            train.direction,
        )
        return None

    if now < start:
        if is_terminus(first.station, stations) and now >= start - DEPARTURE_LOOKAHEAD_MIN:
            return AtStation(first.station, waiting_for_departure=True)
        return None

    if now > end:
        if find_next_service(services, train.train_number, last.station, now) is not None:
            # stays at the terminus for its next working
            return AtStation(last.station)
        if now > end + TERMINATED_GRACE_MIN:
            return None
        return AtStation(last.station)

    for current, nxt in zip(stops, stops[1:]):
        depart = current.departure if current.departure is not None else stop_time(current)
        arrive = nxt.arrival if nxt.arrival is not None else stop_time(nxt)

        if depart is not None and arrive is not None and depart <= now <= arrive:
            progress = 0.0 if now == depart else (now - depart) / (arrive - depart)
            return Between(
                from_station=current.station,
                to_station=nxt.station,
                progress=progress,
                depart_time=depart,
                arrive_time=arrive,
            )

        if current.arrival is not None and current.departure is not None:
            if current.arrival <= now < current.departure:
                return AtStation(current.station)

    # unreachable for well-formed services
    return AtStation(last.station)


# ===================== Active service selection =====================

def _prefer(candidate: ActiveTrain, held: ActiveTrain, now: float) -> bool:
    """True when ``candidate`` should replace ``held`` for the same train number."""
    cand_running = is_running(candidate.train, now)
    held_running = is_running(held.train, now)
    if cand_running != held_running:
        return cand_running
    if cand_running:
        return isinstance(candidate.position, Between) and isinstance(held.position, AtStation)

    cand_finished = has_finished(candidate.train, now)
    held_finished = has_finished(held.train, now)
    if cand_finished != held_finished:
        return cand_finished
    if cand_finished:
        return end_time(candidate.train) > end_time(held.train)
    # both not yet started: first seen wins
    return False


def select_active_trains(
    services: Sequence["TrainService"],
    now: float,
    stations: Sequence[str],
) -> Dict[str, ActiveTrain]:
    """One representative service and position per train number, in first-seen order."""
    active: Dict[str, ActiveTrain] = {}
    for train in services:
        position = find_train_position(train, now, stations, services)
        if position is None:
            continue
        candidate = ActiveTrain(train, position)
        held = active.get(train.train_number)
        if held is None or _prefer(candidate, held, now):
            active[train.train_number] = candidate
    return active
