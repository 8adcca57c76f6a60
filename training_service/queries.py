"""Allow-listed SQL construction shared by every training table.

Each entity type has a static :class:`EntitySpec` describing which query
filters it honours, which columns may be written on insert and update, and
which of those columns hold JSON documents rather than scalars. Nothing in
this module touches the database; the repository executes what is built here.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .domain.contracts import Caller, Role
from .domain.errors import InvalidFieldError, NoUpdatesError


class EntityType(str, Enum):
    exercise = "exercise"
    workout_plan = "workout_plan"
    diet_plan = "diet_plan"
    program = "program"


class FieldKind(str, Enum):
    scalar = "scalar"
    json = "json"


class FilterOp(str, Enum):
    equals = "equals"
    contains = "contains"
    search = "search"
    flag = "flag"


@dataclass(frozen=True, slots=True)
class FilterSpec:
    """A query-string key the list endpoint recognises for an entity."""

    key: str
    columns: tuple[str, ...]
    op: FilterOp = FilterOp.equals
    ignored_for: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class EntitySpec:
    label: str
    table: str
    order_column: str
    owner_column: str
    client_column: str | None
    filters: tuple[FilterSpec, ...]
    insertable: tuple[str, ...]
    updatable: tuple[str, ...]
    json_fields: frozenset[str] = frozenset()

    def kind_of(self, column: str) -> FieldKind:
        return FieldKind.json if column in self.json_fields else FieldKind.scalar


ENTITY_SPECS: dict[EntityType, EntitySpec] = {
    EntityType.exercise: EntitySpec(
        label="Exercise",
        table="exercises",
        order_column="created_at",
        owner_column="created_by",
        client_column=None,
        filters=(
            FilterSpec("muscle_group", ("muscle_group",), FilterOp.contains),
            FilterSpec("difficulty_level", ("difficulty_level",)),
            FilterSpec("search", ("name", "description"), FilterOp.search),
        ),
        insertable=(
            "name",
            "description",
            "muscle_group",
            "equipment_needed",
            "difficulty_level",
            "video_url",
            "instructions",
            "created_by",
        ),
        updatable=(
            "name",
            "description",
            "muscle_group",
            "equipment_needed",
            "difficulty_level",
            "video_url",
            "instructions",
        ),
    ),
    EntityType.workout_plan: EntitySpec(
        label="Workout plan",
        table="workout_plans",
        order_column="created_at",
        owner_column="trainer_id",
        client_column=None,
        filters=(
            FilterSpec("goal", ("goal",)),
            FilterSpec("difficulty_level", ("difficulty_level",)),
            FilterSpec("is_template", ("is_template",), FilterOp.flag),
        ),
        insertable=(
            "name",
            "description",
            "trainer_id",
            "duration_weeks",
            "goal",
            "difficulty_level",
            "exercises",
            "is_template",
        ),
        updatable=(
            "name",
            "description",
            "duration_weeks",
            "goal",
            "difficulty_level",
            "is_template",
            "exercises",
        ),
        json_fields=frozenset({"exercises"}),
    ),
    EntityType.diet_plan: EntitySpec(
        label="Diet plan",
        table="diet_plans",
        order_column="created_at",
        owner_column="trainer_id",
        client_column=None,
        filters=(),
        insertable=(
            "name",
            "trainer_id",
            "calories_target",
            "protein_g",
            "carbs_g",
            "fats_g",
            "meals",
            "restrictions",
        ),
        updatable=(
            "name",
            "calories_target",
            "protein_g",
            "carbs_g",
            "fats_g",
            "restrictions",
            "meals",
        ),
        json_fields=frozenset({"meals"}),
    ),
    EntityType.program: EntitySpec(
        label="Program",
        table="programs",
        order_column="assigned_at",
        owner_column="trainer_id",
        client_column="client_id",
        filters=(
            FilterSpec("client_id", ("client_id",), ignored_for=frozenset({Role.client.value})),
            FilterSpec("status", ("status",)),
        ),
        insertable=(
            "client_id",
            "trainer_id",
            "workout_plan_id",
            "diet_plan_id",
            "start_date",
            "end_date",
            "notes",
            "status",
        ),
        updatable=("status",),
    ),
}


def spec_for(entity: EntityType) -> EntitySpec:
    return ENTITY_SPECS[entity]


@dataclass(frozen=True, slots=True)
class Condition:
    """A single parameterised predicate; conditions are always AND-ed together."""

    columns: tuple[str, ...]
    op: FilterOp
    value: Any

    def to_sql(self) -> tuple[str, list[Any]]:
        if self.op is FilterOp.contains:
            return f"%s = ANY({self.columns[0]})", [self.value]
        if self.op is FilterOp.search:
            pattern = f"%{self.value}%"
            clause = " OR ".join(f"{column} ILIKE %s" for column in self.columns)
            return f"({clause})", [pattern] * len(self.columns)
        return f"{self.columns[0]} = %s", [self.value]


@dataclass(frozen=True, slots=True)
class ListQuery:
    """Paired data/count statements sharing the same predicate."""

    spec: EntitySpec
    scope: tuple[Condition, ...]
    filters: tuple[Condition, ...]
    page: int
    limit: int

    @property
    def conditions(self) -> tuple[Condition, ...]:
        return self.scope + self.filters

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def _where(self) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for condition in self.conditions:
            clause, values = condition.to_sql()
            clauses.append(clause)
            params.extend(values)
        if not clauses:
            return "", params
        return "WHERE " + " AND ".join(clauses), params

    def data_statement(self) -> tuple[str, list[Any]]:
        where_sql, params = self._where()
        query = (
            f"SELECT * FROM {self.spec.table} {where_sql} "
            f"ORDER BY {self.spec.order_column} DESC LIMIT %s OFFSET %s"
        )
        return " ".join(query.split()), [*params, self.limit, self.offset]

    def count_statement(self) -> tuple[str, list[Any]]:
        where_sql, params = self._where()
        query = f"SELECT COUNT(*) FROM {self.spec.table} {where_sql}"
        return " ".join(query.split()), params

    def total_pages(self, total_count: int) -> int:
        return math.ceil(total_count / self.limit)


@dataclass(frozen=True, slots=True)
class WriteQuery:
    """An INSERT or UPDATE whose column list came from an entity allow-list."""

    spec: EntitySpec
    assignments: tuple[tuple[str, Any], ...]
    record_id: Any = None

    @property
    def columns(self) -> list[str]:
        return [column for column, _ in self.assignments]

    def _placeholder(self, column: str) -> str:
        return "%s::jsonb" if self.spec.kind_of(column) is FieldKind.json else "%s"

    def insert_statement(self) -> tuple[str, list[Any]]:
        columns = ", ".join(self.columns)
        placeholders = ", ".join(self._placeholder(column) for column in self.columns)
        query = f"INSERT INTO {self.spec.table} ({columns}) VALUES ({placeholders}) RETURNING *"
        return query, [value for _, value in self.assignments]

    def update_statement(self) -> tuple[str, list[Any]]:
        sets = ", ".join(f"{column} = {self._placeholder(column)}" for column in self.columns)
        query = f"UPDATE {self.spec.table} SET {sets} WHERE id = %s RETURNING *"
        return query, [*(value for _, value in self.assignments), self.record_id]


def _coerce_positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def normalise_pagination(
    page: Any, limit: Any, *, default_limit: int = 20, max_limit: int = 100
) -> tuple[int, int]:
    """Clamp raw page/limit values instead of rejecting them.

    Non-numeric or non-positive values fall back to page 1 and
    ``default_limit``; ``limit`` never exceeds ``max_limit``.
    """
    page_number = _coerce_positive_int(page, 1)
    page_size = min(_coerce_positive_int(limit, default_limit), max_limit)
    return page_number, page_size


def scope_conditions(spec: EntitySpec, caller: Caller) -> tuple[Condition, ...]:
    """Return the mandatory row restriction implied by the caller's role."""
    if caller.role == Role.trainer.value:
        return (Condition((spec.owner_column,), FilterOp.equals, caller.user_id),)
    if caller.role == Role.client.value and spec.client_column:
        return (Condition((spec.client_column,), FilterOp.equals, caller.user_id),)
    return ()


def filter_conditions(
    spec: EntitySpec, criteria: Mapping[str, Any], caller: Caller
) -> tuple[Condition, ...]:
    conditions: list[Condition] = []
    for filter_spec in spec.filters:
        if caller.role in filter_spec.ignored_for:
            continue
        value = criteria.get(filter_spec.key)
        if value is None or value == "":
            continue
        if filter_spec.op is FilterOp.flag:
            value = value if isinstance(value, bool) else str(value).lower() == "true"
        conditions.append(Condition(filter_spec.columns, filter_spec.op, value))
    return tuple(conditions)


def build_list_query(
    entity: EntityType,
    criteria: Mapping[str, Any],
    caller: Caller,
    *,
    page: Any = 1,
    limit: Any = 20,
    default_limit: int = 20,
    max_limit: int = 100,
) -> ListQuery:
    """Build the scoped, filtered and paginated listing for ``entity``.

    Unrecognised criteria keys are ignored. Role scope is computed first and
    caller filters are only ever AND-ed onto it.
    """
    spec = spec_for(entity)
    page_number, page_size = normalise_pagination(
        page, limit, default_limit=default_limit, max_limit=max_limit
    )
    return ListQuery(
        spec=spec,
        scope=scope_conditions(spec, caller),
        filters=filter_conditions(spec, criteria, caller),
        page=page_number,
        limit=page_size,
    )


def serialise_field(spec: EntitySpec, column: str, value: Any) -> Any:
    """Return ``value`` ready for binding; JSON columns become canonical text.

    JSON columns only ever hold arrays, so a missing value is stored as ``[]``
    and anything other than a list is rejected with :class:`InvalidFieldError`.
    """
    if spec.kind_of(column) is FieldKind.json:
        if value is None:
            return "[]"
        if not isinstance(value, list):
            raise InvalidFieldError(f"{column} must be an array")
        return json.dumps(value)
    return value


def build_insert(entity: EntityType, values: Mapping[str, Any]) -> WriteQuery:
    spec = spec_for(entity)
    assignments = []
    for column in spec.insertable:
        value = values.get(column)
        if column in spec.json_fields or column in values:
            assignments.append((column, serialise_field(spec, column, value)))
    return WriteQuery(spec=spec, assignments=tuple(assignments))


def build_update(entity: EntityType, record_id: Any, updates: Mapping[str, Any]) -> WriteQuery:
    """Project a sparse update onto the entity's allow-list.

    Keys keep the insertion order of ``updates``; disallowed keys are dropped.

    Raises
    ------
    NoUpdatesError
        When no allow-listed key survives the projection.
    InvalidFieldError
        When a JSON column is given something other than an array.
    """
    spec = spec_for(entity)
    allowed = set(spec.updatable)
    assignments = tuple(
        (column, serialise_field(spec, column, value))
        for column, value in updates.items()
        if column in allowed
    )
    if not assignments:
        raise NoUpdatesError()
    return WriteQuery(spec=spec, assignments=assignments, record_id=record_id)
