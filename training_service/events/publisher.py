"""Best-effort publication of program events over Redis pub/sub."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel
from redis import Redis

from ..domain.contracts import Row
from .schemas import EventEnvelope, ProgramAssigned, ProgramCompleted, ProgramUpdated

logger = logging.getLogger(__name__)

PROGRAM_ASSIGNED = "program.assigned"
PROGRAM_COMPLETED = "program.completed"
PROGRAM_UPDATED = "program.updated"


def _as_str(value: Any) -> str | None:
    return None if value is None else str(value)


class EventPublisher:
    """Publishes each event exactly once and never raises to the caller."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    def publish_event(
        self, channel: str, payload: BaseModel, correlation_id: str | None = None
    ) -> str | None:
        """Publish ``payload`` on ``channel`` and return the correlation id used.

        Returns ``None`` when publication failed; the failure is logged only.
        """
        try:
            envelope = EventEnvelope(
                event=channel,
                timestamp=datetime.now(timezone.utc),
                correlation_id=correlation_id or str(uuid.uuid4()),
                data=payload.model_dump(mode="json"),
            )
            self._client.publish(channel, envelope.model_dump_json())
        except Exception as exc:
            logger.error("failed to publish event to %s: %s", channel, exc)
            return None
        logger.info(
            "event published: %s",
            channel,
            extra={"correlation_id": envelope.correlation_id, "data": envelope.data},
        )
        return envelope.correlation_id

    def publish_program_assigned(
        self,
        program: Row,
        *,
        duration_weeks: int | None = None,
        correlation_id: str | None = None,
    ) -> str | None:
        payload = ProgramAssigned(
            program_id=str(program["id"]),
            client_id=str(program["client_id"]),
            trainer_id=str(program["trainer_id"]),
            workout_plan_id=_as_str(program.get("workout_plan_id")),
            diet_plan_id=_as_str(program.get("diet_plan_id")),
            start_date=program.get("start_date"),
            duration_weeks=duration_weeks,
        )
        return self.publish_event(PROGRAM_ASSIGNED, payload, correlation_id)

    def publish_program_completed(
        self,
        program: Row,
        *,
        adherence_rate: int | float | None = None,
        correlation_id: str | None = None,
    ) -> str | None:
        payload = ProgramCompleted(
            program_id=str(program["id"]),
            client_id=str(program["client_id"]),
            trainer_id=str(program["trainer_id"]),
            completion_date=datetime.now(timezone.utc).date(),
            adherence_rate=adherence_rate,
        )
        return self.publish_event(PROGRAM_COMPLETED, payload, correlation_id)

    def publish_program_updated(
        self, program: Row, changes: list[str], *, correlation_id: str | None = None
    ) -> str | None:
        payload = ProgramUpdated(
            program_id=str(program["id"]),
            client_id=str(program["client_id"]),
            trainer_id=str(program["trainer_id"]),
            changes=list(changes),
        )
        return self.publish_event(PROGRAM_UPDATED, payload, correlation_id)
