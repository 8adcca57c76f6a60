"""Training services orchestrating persistence, identity checks and events."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from .contracts import AssignProgramInput, Caller, Page, ProgramStatus, Role, Row
from .errors import (
    ClientNotFoundError,
    ForbiddenError,
    InvalidRoleError,
    NotFoundError,
    ServiceUnavailableError,
)
from ..clients.identity import (
    IdentityServiceClient,
    IdentityServiceUnavailableError,
    UserNotFoundError,
)
from ..config import get_settings
from ..events.publisher import EventPublisher
from ..queries import EntityType, build_insert, build_list_query, build_update, spec_for
from ..repository import TrainingRepository

logger = logging.getLogger(__name__)


class TrainingService:
    """Create/read/update/delete workflows shared by every catalogue entity."""

    def __init__(self, repository: TrainingRepository) -> None:
        self._repository = repository

    def create(self, entity: EntityType, values: Mapping[str, Any], caller: Caller) -> Row:
        """Insert a row owned by ``caller``; the owner column is never client supplied."""
        spec = spec_for(entity)
        row = {**values, spec.owner_column: caller.user_id}
        return self._repository.insert(build_insert(entity, row))

    def get(self, entity: EntityType, record_id: str) -> Row:
        row = self._repository.get(entity, record_id)
        if row is None:
            raise NotFoundError(f"{spec_for(entity).label} not found")
        return row

    def list_page(
        self,
        entity: EntityType,
        criteria: Mapping[str, Any],
        caller: Caller,
        *,
        page: Any = None,
        limit: Any = None,
    ) -> Page:
        """Return one role-scoped page of ``entity`` rows matching ``criteria``."""
        settings = get_settings()
        query = build_list_query(
            entity,
            criteria,
            caller,
            page=page,
            limit=limit,
            default_limit=settings.default_page_size,
            max_limit=settings.max_page_size,
        )
        rows, total = self._repository.list_page(query)
        return Page(
            items=rows,
            page=query.page,
            limit=query.limit,
            total_count=total,
            total_pages=query.total_pages(total),
        )

    def update(self, entity: EntityType, record_id: str, updates: Mapping[str, Any]) -> Row:
        """Apply a sparse update and return the full row as persisted."""
        query = build_update(entity, record_id, updates)
        row = self._repository.update(query)
        if row is None:
            raise NotFoundError(f"{spec_for(entity).label} not found")
        return row

    def delete(self, entity: EntityType, record_id: str) -> None:
        if not self._repository.delete(entity, record_id):
            raise NotFoundError(f"{spec_for(entity).label} not found")


class ProgramService:
    """Program assignment and lifecycle transitions.

    Writes always happen before the matching event is published, and event
    publication can never fail a request whose write already succeeded.
    """

    def __init__(
        self,
        repository: TrainingRepository,
        identity: IdentityServiceClient,
        events: EventPublisher,
    ) -> None:
        self._repository = repository
        self._identity = identity
        self._events = events

    def _notify(self, publish: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        try:
            publish(*args, **kwargs)
        except Exception:
            logger.exception("program event could not be published")

    def _validate_client(self, client_id: str, token: str) -> None:
        try:
            user = self._identity.get_user(client_id, token)
        except UserNotFoundError as exc:
            raise ClientNotFoundError() from exc
        except IdentityServiceUnavailableError as exc:
            raise ServiceUnavailableError() from exc
        if user.get("role") != Role.client.value:
            raise InvalidRoleError()

    def assign_program(
        self,
        payload: AssignProgramInput,
        caller: Caller,
        correlation_id: str | None = None,
    ) -> Row:
        """Validate the client remotely, persist an active program, then announce it.

        Raises
        ------
        ClientNotFoundError
            The identity service does not know ``payload.client_id``.
        ServiceUnavailableError
            The identity service could not be reached in time.
        InvalidRoleError
            The referenced user exists but is not a client.
        """
        self._validate_client(payload.client_id, caller.token)

        values = {
            "client_id": payload.client_id,
            "trainer_id": caller.user_id,
            "workout_plan_id": payload.workout_plan_id,
            "diet_plan_id": payload.diet_plan_id,
            "start_date": payload.start_date,
            "end_date": payload.end_date,
            "notes": payload.notes,
            "status": ProgramStatus.active.value,
        }
        program = self._repository.insert(build_insert(EntityType.program, values))

        self._notify(
            self._events.publish_program_assigned,
            program,
            duration_weeks=payload.duration_weeks,
            correlation_id=correlation_id,
        )
        logger.info(
            "program created: %s for client %s by trainer %s",
            program["id"],
            payload.client_id,
            caller.user_id,
        )
        return program

    def _set_status(self, program_id: str, status: str) -> Row:
        row = self._repository.update(build_update(EntityType.program, program_id, {"status": status}))
        if row is None:
            raise NotFoundError("Program not found")
        return row

    def update_status(
        self, program_id: str, status: str, correlation_id: str | None = None
    ) -> Row:
        """Set an arbitrary status; completion announces program.completed without a rate."""
        program = self._set_status(program_id, status)
        if status == ProgramStatus.completed.value:
            self._notify(
                self._events.publish_program_completed,
                program,
                adherence_rate=None,
                correlation_id=correlation_id,
            )
        else:
            self._notify(
                self._events.publish_program_updated,
                program,
                ["status"],
                correlation_id=correlation_id,
            )
        return program

    def complete_program(
        self,
        program_id: str,
        adherence_rate: int | float | None = None,
        correlation_id: str | None = None,
    ) -> Row:
        program = self._set_status(program_id, ProgramStatus.completed.value)
        self._notify(
            self._events.publish_program_completed,
            program,
            adherence_rate=adherence_rate,
            correlation_id=correlation_id,
        )
        logger.info("program completed: %s", program["id"])
        return program

    def list_active_programs(self, client_id: str, caller: Caller) -> list[Row]:
        """Return a client's active programs; clients may only read their own."""
        if caller.role == Role.client.value and client_id != caller.user_id:
            raise ForbiddenError()
        return self._repository.list_active_programs(client_id)
