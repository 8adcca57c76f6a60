"""Program event contracts and their Redis publisher."""

from .publisher import (
    PROGRAM_ASSIGNED,
    PROGRAM_COMPLETED,
    PROGRAM_UPDATED,
    EventPublisher,
)
from .schemas import EventEnvelope, ProgramAssigned, ProgramCompleted, ProgramUpdated

__all__ = [
    "PROGRAM_ASSIGNED",
    "PROGRAM_COMPLETED",
    "PROGRAM_UPDATED",
    "EventEnvelope",
    "EventPublisher",
    "ProgramAssigned",
    "ProgramCompleted",
    "ProgramUpdated",
]
