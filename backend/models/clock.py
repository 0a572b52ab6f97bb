from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from backend.config import settings
from utils import wrap_minutes


def _wall_clock() -> datetime:
    return datetime.now(settings.tz)


@dataclass
class Clock:
    """Evaluation instant: wall clock while live, a fixed minute otherwise.

    Only user actions change it. Read ``current_minutes()`` once per render and
    pass the value on.
    """

    live: bool = True
    manual_minutes: int = 0
    now_fn: Callable[[], datetime] = field(default=_wall_clock, repr=False)

    def wall_minutes(self) -> int:
        now = self.now_fn()
        return now.hour * 60 + now.minute

    def current_minutes(self) -> int:
        if self.live:
            return self.wall_minutes()
        return self.manual_minutes

    def step(self, minutes: int) -> int:
        """Move the manual time; leaving live mode freezes the current wall minute first."""
        if self.live:
            self.manual_minutes = self.wall_minutes()
            self.live = False
        self.manual_minutes = wrap_minutes(self.manual_minutes + minutes)
        return self.manual_minutes

    def go_live(self) -> None:
        self.live = True
        self.manual_minutes = self.wall_minutes()
