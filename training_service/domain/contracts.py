"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


Row = dict[str, Any]


class Role(str, Enum):
    admin = "admin"
    trainer = "trainer"
    client = "client"


class Difficulty(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class Goal(str, Enum):
    weight_loss = "weight_loss"
    muscle_gain = "muscle_gain"
    endurance = "endurance"
    flexibility = "flexibility"
    general_fitness = "general_fitness"


class ProgramStatus(str, Enum):
    active = "active"
    completed = "completed"
    paused = "paused"


@dataclass(slots=True, frozen=True)
class Caller:
    """Authenticated requester as established by the bearer token."""

    user_id: str
    role: str
    token: str = ""


@dataclass(slots=True)
class AssignProgramInput:
    """Validated inputs required to assign a program to a client."""

    client_id: str
    start_date: date
    workout_plan_id: str | None = None
    diet_plan_id: str | None = None
    end_date: date | None = None
    notes: str | None = None
    # Only forwarded to the program.assigned event, never persisted.
    duration_weeks: int | None = None


@dataclass(slots=True)
class Page:
    """One page of rows plus the pagination summary returned to API consumers."""

    items: list[Row] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total_count: int = 0
    total_pages: int = 0

    def pagination(self) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
        }
