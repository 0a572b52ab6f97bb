from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class TimetableInfo(BaseModel):
    name: Optional[str] = None
    date: Optional[str] = None


class StatusLine(BaseModel):
    train_number: str
    direction: str
    color: str
    text: str


class TrackerResponse(BaseModel):
    time: str
    minutes: int
    live: bool
    timetable: Optional[TimetableInfo] = None
    stations: list[str]
    layout: list[dict]
    statuses: list[StatusLine]
    positions: list[dict]
    plot_series: list[dict]
    x_min: int
    x_max: int
    grid_rows: list[dict]
    column_defs: list[dict]
    train_colors: dict[str, str]


class ClockResponse(BaseModel):
    live: bool
    minutes: int
    time: str


class UploadResponse(BaseModel):
    ok: bool
    changed: bool
    name: Optional[str] = None
    date: Optional[str] = None
    message: str = ""
