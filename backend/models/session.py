from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from backend.models.clock import Clock
from backend.models.timetable import Timetable


@dataclass
class SessionState:
    """The loaded timetable plus everything derived from it, and the clock.

    Derived fields are only ever replaced together with the timetable.
    """

    timetable: Optional[Timetable] = None
    stations: list[str] = field(default_factory=list)
    train_colors: dict[str, str] = field(default_factory=dict)
    timetable_hash: Optional[str] = None
    source: str = ""
    clock: Clock = field(default_factory=Clock)

    @property
    def loaded(self) -> bool:
        return self.timetable is not None
