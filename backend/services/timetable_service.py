"""Timetable retrieval and loading into the session.

Layout on disk::

    <base>/debug.json
    <base>/<year>/schedule.json      [{"date": "18-Oct", "timetable": "green"}, ...]
    <base>/<year>/<timetable>.json
"""
from __future__ import annotations

import datetime as dt
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Optional

from backend.config import settings
from backend.models.session import SessionState
from backend.models.timetable import Timetable
from tracker import extract_stations

logger = logging.getLogger(__name__)

SERVICE_NAME = "LiveTrainTracker"
SERVICE_VERSION = "1.0.0"

COLOR_PALETTE = [
    "#ff6b6b", "#4ecdc4", "#45b7d1", "#96ceb4", "#ffeaa7",
    "#fd79a8", "#fdcb6e", "#6c5ce7", "#a29bfe", "#74b9ff",
]


class TimetableNotFoundError(FileNotFoundError):
    """No timetable is scheduled (or present) for the requested date."""


class InvalidTimetableError(ValueError):
    """A timetable file exists but is not valid JSON."""


class TimetableService:
    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)
        self._timetable_cache: dict[Path, str] = {}
        self._schedule_cache: dict[int, list[dict[str, Any]]] = {}

    def get_timetable_for_date(self, date: dt.date, debug: bool = False) -> str:
        """Raw timetable JSON for ``date``. Debug mode always serves debug.json."""
        logger.info("Looking for timetable for date: %s, debug mode: %s", date.isoformat(), debug)

        if debug:
            debug_path = self.base_dir / "debug.json"
            if not debug_path.is_file():
                logger.warning("No debug timetable found at %s", debug_path)
                raise TimetableNotFoundError(f"No debug timetable found at {debug_path}")
            return self._load_and_cache(debug_path)

        schedule = self.load_schedule(date.year)
        if schedule:
            date_key = date.strftime("%d-%b")
            entry = next(
                (e for e in schedule if str(e.get("date", "")).lower() == date_key.lower()),
                None,
            )
            name = str(entry.get("timetable") or "").strip() if entry else ""
            if name:
                logger.info("Found schedule entry for %s: %s", date_key, name)
                path = self.base_dir / str(date.year) / f"{name}.json"
                if path.is_file():
                    return self._load_and_cache(path)
                logger.warning("Scheduled timetable file not found: %s", path)
            else:
                logger.info("No schedule entry found for %s", date_key)

        # no fallback to a default timetable
        logger.warning("No timetable scheduled for date %s", date.isoformat())
        raise TimetableNotFoundError(f"No timetable found for date {date.isoformat()}")

    def load_timetable(self, date: dt.date, debug: bool = False) -> Timetable:
        return Timetable.model_validate_json(self.get_timetable_for_date(date, debug=debug))

    def load_schedule(self, year: int) -> Optional[list[dict[str, Any]]]:
        if year in self._schedule_cache:
            return self._schedule_cache[year]

        path = self.base_dir / str(year) / "schedule.json"
        if not path.is_file():
            logger.info("No schedule.json found for year %s", year)
            return None

        try:
            schedule = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.exception("Error loading schedule.json for year %s", year)
            return None
        if not isinstance(schedule, list):
            logger.error("schedule.json for year %s is not a list", year)
            return None

        schedule = [e for e in schedule if isinstance(e, dict)]
        self._schedule_cache[year] = schedule
        logger.info("Loaded schedule for year %s with %d entries", year, len(schedule))
        return schedule

    def _load_and_cache(self, path: Path) -> str:
        if path in self._timetable_cache:
            logger.info("Returning cached timetable for %s", path)
            return self._timetable_cache[path]

        content = path.read_text(encoding="utf-8")
        try:
            json.loads(content)
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON in timetable file: %s", path)
            raise InvalidTimetableError(f"Invalid JSON in timetable file: {path}") from exc

        self._timetable_cache[path] = content
        return content

    def clear_cache(self) -> None:
        """Forget cached timetables and schedules so the next lookup rereads the files."""
        self._timetable_cache.clear()
        self._schedule_cache.clear()

    def get_available_timetables(self) -> list[str]:
        if not self.base_dir.is_dir():
            logger.warning("Timetables base directory not found: %s", self.base_dir)
            return []

        found: list[str] = []
        for year_dir in sorted(p for p in self.base_dir.iterdir() if p.is_dir()):
            for f in sorted(year_dir.glob("*.json")):
                if f.name.lower() == "schedule.json":
                    continue
                found.append(f.relative_to(self.base_dir).as_posix())
        return found

    def health_status(self) -> tuple[dict[str, Any], bool]:
        """Health document and whether the service is healthy."""
        now = dt.datetime.now(dt.timezone.utc).isoformat()
        try:
            available = self.get_available_timetables()
        except OSError as exc:
            logger.exception("Health check failed")
            return {
                "status": "unhealthy",
                "timestamp": now,
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "error": str(exc),
                "checks": {"timetableService": "error", "fileSystem": "error"},
            }, False

        return {
            "status": "healthy",
            "timestamp": now,
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timetablesAvailable": len(available),
            "checks": {"timetableService": "ok", "fileSystem": "ok"},
        }, True


_service: Optional[TimetableService] = None


def get_timetable_service() -> TimetableService:
    global _service
    if _service is None:
        _service = TimetableService(settings.TIMETABLES_DIR)
    return _service


# ===================== Session loading =====================

def assign_train_colors(timetable: Timetable) -> dict[str, str]:
    """Palette colours in alphabetical train-number order."""
    numbers = sorted({t.train_number for t in timetable.trains})
    return {tn: COLOR_PALETTE[i % len(COLOR_PALETTE)] for i, tn in enumerate(numbers)}


def load_timetable_content(
    content: str | bytes,
    session: SessionState,
    source: str = "",
    force: bool = False,
) -> dict[str, Any]:
    """Validate timetable JSON and replace the session's timetable with it.

    Nothing on the session changes unless the new timetable is valid. ``force``
    replaces it even when the content is identical to what is loaded.
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    content_hash = hashlib.sha256(raw).hexdigest()
    if not force and session.timetable_hash == content_hash:
        return {"changed": False}

    timetable = Timetable.model_validate_json(raw)
    stations = extract_stations(timetable)

    session.timetable = timetable
    session.stations = stations
    session.train_colors = assign_train_colors(timetable)
    session.timetable_hash = content_hash
    session.source = source

    logger.info(
        "Loaded timetable %r (%s) with %d services over %d stations",
        timetable.name,
        source or "upload",
        len(timetable.trains),
        len(stations),
    )
    return {"changed": True, "name": timetable.name, "date": timetable.date}


def load_for_date(
    session: SessionState,
    service: TimetableService,
    date: Optional[dt.date] = None,
    debug: bool = False,
    force: bool = False,
) -> dict[str, Any]:
    """Load the timetable scheduled for ``date`` (today by default) into the session."""
    if date is None:
        date = dt.datetime.now(settings.tz).date()
    content = service.get_timetable_for_date(date, debug=debug)
    return load_timetable_content(
        content, session, source="debug" if debug else date.isoformat(), force=force
    )
