"""Typed timetable payload.

Times arrive as "HH:MM" strings and are stored as minutes since midnight, so
nothing past this module handles raw JSON.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils import parse_time

Direction = Literal["northbound", "southbound"]


class Stop(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    station: str
    arrival: Optional[int] = None
    departure: Optional[int] = None
    time: Optional[int] = None
    stops_at: bool = Field(default=True, alias="stopsAt")

    @field_validator("arrival", "departure", "time", mode="before")
    @classmethod
    def _parse_hhmm(cls, value):
        return parse_time(value)


class TrainService(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    train_number: str = Field(alias="trainNumber")
    direction: Direction
    stops: list[Stop] = Field(min_length=1)


class Timetable(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    date: Optional[str] = None
    trains: list[TrainService] = Field(default_factory=list)
