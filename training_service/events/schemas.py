"""Pydantic models for program domain events."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class ProgramAssigned(BaseModel):
    program_id: str
    client_id: str
    trainer_id: str
    workout_plan_id: str | None = None
    diet_plan_id: str | None = None
    start_date: date | None = None
    duration_weeks: int | None = None


class ProgramCompleted(BaseModel):
    program_id: str
    client_id: str
    trainer_id: str
    completion_date: date
    adherence_rate: int | float | None = None


class ProgramUpdated(BaseModel):
    program_id: str
    client_id: str
    trainer_id: str
    changes: list[str] = Field(default_factory=list)


class EventEnvelope(BaseModel):
    """Wire format published on the event channel."""

    event: str
    timestamp: datetime
    correlation_id: str
    data: dict[str, Any]
