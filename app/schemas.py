from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class PilotCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=128)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class PilotUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class RaceCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date
    name: Optional[str] = Field(default=None, max_length=128)
    location: Optional[str] = Field(default=None, max_length=128)


class RaceUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    date: Optional[dt.date] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    location: Optional[str] = Field(default=None, min_length=1, max_length=128)


class ResultEntry(BaseModel):
    pilot_id: int
    # Left empty while the grid is being filled in.
    position: Optional[int] = Field(default=None, ge=1)


class RaceResultsSubmit(BaseModel):
    results: list[ResultEntry]
    pole_pilot_id: Optional[int] = None
    fastest_lap_pilot_id: Optional[int] = None


class PositionReassign(BaseModel):
    pilot_id: int
    position: int = Field(ge=1)


class StandingOut(BaseModel):
    rank: int
    pilot_id: int
    pilot_name: str
    color: str
    total_points: int
    races_scored: int
