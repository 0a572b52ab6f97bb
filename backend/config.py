import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

BASE_DIR = Path(__file__).resolve().parent.parent
STATIC_DIR = BASE_DIR / "frontend" / "dist"


def _bool_env(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).lower() in ("1", "true", "yes", "on")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Settings:
    """Settings read from the environment with sensible defaults."""

    def __init__(self) -> None:
        # Timetables/<year>/schedule.json, Timetables/<year>/<name>.json, debug.json
        self.TIMETABLES_DIR: str = os.getenv("TIMETABLES_DIR", str(BASE_DIR / "timetables"))
        self.TIMEZONE: str = os.getenv("TIMEZONE", "Europe/London")

        self.LIVE_REFRESH_SECONDS: int = _int_env("LIVE_REFRESH_SECONDS", 30)
        self.HEALTH_REFRESH_SECONDS: int = _int_env("HEALTH_REFRESH_SECONDS", 60)

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_TO_CONSOLE: bool = _bool_env("LOG_TO_CONSOLE", True)
        self.LOG_FILE: Optional[str] = os.getenv("LOG_FILE")
        self.LOG_FORMAT: str = os.getenv("LOG_FORMAT", "%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


settings = Settings()
