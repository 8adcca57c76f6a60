from __future__ import annotations

import copy
import json
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import jwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from training_service.api import routes
from training_service.api.errors import register_error_handlers
from training_service.clients.identity import IdentityServiceClient
from training_service.config import get_settings
from training_service.domain.service import ProgramService, TrainingService
from training_service.events.publisher import EventPublisher
from training_service.queries import (
    ENTITY_SPECS,
    Condition,
    EntityType,
    FilterOp,
    ListQuery,
    WriteQuery,
    spec_for,
)


class FakeRepository:
    """In-memory repository mimicking Postgres-backed behaviors."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {
            spec.table: {} for spec in ENTITY_SPECS.values()
        }
        self.calls: list[str] = []
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _decode(self, query: WriteQuery) -> dict[str, Any]:
        values = {}
        for column, value in query.assignments:
            values[column] = json.loads(value) if column in query.spec.json_fields else value
        return values

    def insert(self, query: WriteQuery) -> dict[str, Any]:
        self.calls.append("insert")
        row = {"id": str(uuid.uuid4()), **self._decode(query)}
        row[query.spec.order_column] = self._tick()
        self.tables[query.spec.table][row["id"]] = row
        return copy.deepcopy(row)

    def get(self, entity: EntityType, record_id: str):
        self.calls.append("get")
        row = self.tables[spec_for(entity).table].get(record_id)
        return copy.deepcopy(row) if row else None

    def list_page(self, query: ListQuery):
        self.calls.append("list_page")
        rows = [
            row
            for row in self.tables[query.spec.table].values()
            if all(_matches(row, condition) for condition in query.conditions)
        ]
        rows.sort(key=lambda r: r[query.spec.order_column], reverse=True)
        page = rows[query.offset : query.offset + query.limit]
        return copy.deepcopy(page), len(rows)

    def update(self, query: WriteQuery):
        self.calls.append("update")
        row = self.tables[query.spec.table].get(query.record_id)
        if row is None:
            return None
        row.update(self._decode(query))
        return copy.deepcopy(row)

    def delete(self, entity: EntityType, record_id: str) -> bool:
        self.calls.append("delete")
        return self.tables[spec_for(entity).table].pop(record_id, None) is not None

    def list_active_programs(self, client_id: str):
        self.calls.append("list_active_programs")
        results = []
        for program in self.tables["programs"].values():
            if program["client_id"] != client_id or program["status"] != "active":
                continue
            workout = self.tables["workout_plans"].get(program.get("workout_plan_id") or "")
            diet = self.tables["diet_plans"].get(program.get("diet_plan_id") or "")
            results.append(
                {
                    **program,
                    "workout_name": workout["name"] if workout else None,
                    "diet_name": diet["name"] if diet else None,
                }
            )
        results.sort(key=lambda r: r["assigned_at"], reverse=True)
        return copy.deepcopy(results)

    def seed(self, entity: EntityType, **values: Any) -> dict[str, Any]:
        spec = spec_for(entity)
        row = {"id": str(uuid.uuid4()), **values, spec.order_column: self._tick()}
        self.tables[spec.table][row["id"]] = row
        return copy.deepcopy(row)


def _matches(row: dict[str, Any], condition: Condition) -> bool:
    if condition.op is FilterOp.contains:
        return condition.value in (row.get(condition.columns[0]) or [])
    if condition.op is FilterOp.search:
        needle = str(condition.value).lower()
        return any(needle in (row.get(column) or "").lower() for column in condition.columns)
    return row.get(condition.columns[0]) == condition.value


class IdentityStub:
    """Request handler standing in for the user identity service."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.failure: Exception | None = None
        self.status_override: int | None = None
        self.requests: list[httpx.Request] = []

    def add_user(self, user_id: str, role: str) -> None:
        self.users[user_id] = {"id": user_id, "role": role, "email": f"{user_id}@example.com"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failure is not None:
            raise self.failure
        if self.status_override is not None:
            return httpx.Response(self.status_override, json={"success": False})
        user_id = request.url.path.rsplit("/", 1)[-1]
        user = self.users.get(user_id)
        if user is None:
            return httpx.Response(404, json={"success": False, "error": {"code": "NOT_FOUND"}})
        return httpx.Response(200, json={"success": True, "data": user})


class RecordingRedis:
    """Stand-in Redis client that records every publish call."""

    def __init__(self) -> None:
        self.published: list[tuple[str, dict[str, Any]]] = []
        self.fail = False

    def publish(self, channel: str, message: str) -> int:
        if self.fail:
            raise ConnectionError("redis is down")
        self.published.append((channel, json.loads(message)))
        return 1

    def channels(self) -> list[str]:
        return [channel for channel, _ in self.published]


@dataclass
class ServiceEnv:
    repository: FakeRepository
    identity: IdentityStub
    events: RecordingRedis
    training: TrainingService
    programs: ProgramService


def make_token(user_id: str, role: str, **overrides: Any) -> str:
    settings = get_settings()
    now = int(time.time())
    claims = {
        "id": user_id,
        "role": role,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + 3600,
        **overrides,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm="HS256")


def auth(user_id: str, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def env():
    """Services wired to in-memory collaborators."""
    repository = FakeRepository()
    stub = IdentityStub()
    identity = IdentityServiceClient(
        "http://identity.test", transport=httpx.MockTransport(stub.handler)
    )
    redis_client = RecordingRedis()
    yield ServiceEnv(
        repository=repository,
        identity=stub,
        events=redis_client,
        training=TrainingService(repository),
        programs=ProgramService(repository, identity, EventPublisher(redis_client)),
    )
    identity.close()


@pytest.fixture
def api_client(env):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    register_error_handlers(app)
    app.state.training_service = env.training
    app.state.program_service = env.programs

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
