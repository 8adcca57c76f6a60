"""HTTP route definitions for the training service."""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Header, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field

from ..domain.contracts import (
    AssignProgramInput,
    Caller,
    Difficulty,
    Goal,
    Page,
    ProgramStatus,
    Role,
    Row,
)
from ..domain.service import ProgramService, TrainingService
from ..queries import EntityType
from ..security.tokens import get_caller, require_roles

router = APIRouter(prefix="/api")

staff_only = require_roles(Role.admin.value, Role.trainer.value)


class _Payload(BaseModel):
    model_config = ConfigDict(use_enum_values=True)


class ExerciseCreateRequest(_Payload):
    """Payload accepted when creating an exercise."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    muscle_group: list[str] = Field(..., min_length=1)
    equipment_needed: list[str] | None = None
    difficulty_level: Difficulty | None = None
    video_url: str | None = None
    instructions: str | None = None


class WorkoutExercise(BaseModel):
    exercise_id: str
    sets: int | None = None
    reps: str | None = None
    rest_seconds: int | None = None
    duration_seconds: int | None = None
    notes: str | None = None


class WorkoutCreateRequest(_Payload):
    """Payload accepted when creating a workout plan."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    duration_weeks: int | None = Field(default=None, ge=1)
    goal: Goal | None = None
    difficulty_level: Difficulty | None = None
    exercises: list[WorkoutExercise] = Field(default_factory=list)
    is_template: bool = False


class Macros(BaseModel):
    protein_g: float | None = None
    carbs_g: float | None = None
    fats_g: float | None = None


class Meal(BaseModel):
    meal_type: str
    name: str
    ingredients: list[str] = Field(default_factory=list)
    instructions: str | None = None
    calories: int | None = None
    macros: Macros | None = None


class DietCreateRequest(_Payload):
    """Payload accepted when creating a diet plan."""

    name: str = Field(..., min_length=1, max_length=255)
    calories_target: int | None = None
    protein_g: int | None = None
    carbs_g: int | None = None
    fats_g: int | None = None
    meals: list[Meal] = Field(default_factory=list)
    restrictions: list[str] | None = None


class ProgramAssignRequest(_Payload):
    """Payload accepted when assigning a program; any ``status`` sent is ignored."""

    client_id: str
    workout_plan_id: str | None = None
    diet_plan_id: str | None = None
    start_date: date
    end_date: date | None = None
    notes: str | None = None
    duration_weeks: int | None = Field(default=None, ge=1)


class ProgramStatusRequest(_Payload):
    status: ProgramStatus


class ProgramCompleteRequest(BaseModel):
    adherence_rate: int | float | None = Field(default=None, ge=0, le=100)


def get_training_service(request: Request) -> TrainingService:
    """Resolve the `TrainingService` stored on the FastAPI application state."""
    service: TrainingService = request.app.state.training_service
    return service


def get_program_service(request: Request) -> ProgramService:
    service: ProgramService = request.app.state.program_service
    return service


def get_correlation_id(
    correlation_id: str | None = Header(default=None, alias="X-Correlation-ID"),
) -> str | None:
    return correlation_id


def _ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def _paged(page: Page) -> dict[str, Any]:
    return {"success": True, "data": page.items, "pagination": page.pagination()}


def _deleted(label: str) -> dict[str, Any]:
    return {"success": True, "message": f"{label} deleted successfully"}


# Exercises


@router.post("/exercises", status_code=status.HTTP_201_CREATED)
def create_exercise(
    payload: ExerciseCreateRequest,
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.create(EntityType.exercise, payload.model_dump(), caller))


@router.get("/exercises")
def list_exercises(
    muscle_group: str | None = Query(default=None),
    difficulty_level: str | None = Query(default=None),
    search: str | None = Query(default=None),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    """Return exercises matching the optional muscle group, difficulty and text search."""
    criteria = {"muscle_group": muscle_group, "difficulty_level": difficulty_level, "search": search}
    return _paged(service.list_page(EntityType.exercise, criteria, caller, page=page, limit=limit))


@router.get("/exercises/{exercise_id}")
def get_exercise(
    exercise_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.get(EntityType.exercise, str(exercise_id)))


@router.put("/exercises/{exercise_id}")
def update_exercise(
    exercise_id: UUID,
    updates: dict[str, Any] = Body(...),
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.update(EntityType.exercise, str(exercise_id), updates))


@router.delete("/exercises/{exercise_id}")
def delete_exercise(
    exercise_id: UUID,
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    service.delete(EntityType.exercise, str(exercise_id))
    return _deleted("Exercise")


# Workout plans


@router.post("/workouts", status_code=status.HTTP_201_CREATED)
def create_workout(
    payload: WorkoutCreateRequest,
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.create(EntityType.workout_plan, payload.model_dump(), caller))


@router.get("/workouts")
def list_workouts(
    goal: str | None = Query(default=None),
    difficulty_level: str | None = Query(default=None),
    is_template: str | None = Query(default=None),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    """Return workout plans; trainers only ever see their own."""
    criteria = {"goal": goal, "difficulty_level": difficulty_level, "is_template": is_template}
    return _paged(service.list_page(EntityType.workout_plan, criteria, caller, page=page, limit=limit))


@router.get("/workouts/{workout_id}")
def get_workout(
    workout_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.get(EntityType.workout_plan, str(workout_id)))


@router.put("/workouts/{workout_id}")
def update_workout(
    workout_id: UUID,
    updates: dict[str, Any] = Body(...),
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.update(EntityType.workout_plan, str(workout_id), updates))


@router.delete("/workouts/{workout_id}")
def delete_workout(
    workout_id: UUID,
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    service.delete(EntityType.workout_plan, str(workout_id))
    return _deleted("Workout plan")


# Diet plans


@router.post("/diets", status_code=status.HTTP_201_CREATED)
def create_diet(
    payload: DietCreateRequest,
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.create(EntityType.diet_plan, payload.model_dump(), caller))


@router.get("/diets")
def list_diets(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _paged(service.list_page(EntityType.diet_plan, {}, caller, page=page, limit=limit))


@router.get("/diets/{diet_id}")
def get_diet(
    diet_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.get(EntityType.diet_plan, str(diet_id)))


@router.put("/diets/{diet_id}")
def update_diet(
    diet_id: UUID,
    updates: dict[str, Any] = Body(...),
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.update(EntityType.diet_plan, str(diet_id), updates))


@router.delete("/diets/{diet_id}")
def delete_diet(
    diet_id: UUID,
    caller: Caller = Depends(staff_only),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    service.delete(EntityType.diet_plan, str(diet_id))
    return _deleted("Diet plan")


# Programs


@router.post("/programs", status_code=status.HTTP_201_CREATED)
def assign_program(
    payload: ProgramAssignRequest,
    caller: Caller = Depends(staff_only),
    service: ProgramService = Depends(get_program_service),
    correlation_id: str | None = Depends(get_correlation_id),
) -> dict[str, Any]:
    """Assign a program to a client after validating them with the identity service."""
    program: Row = service.assign_program(
        AssignProgramInput(
            client_id=payload.client_id,
            start_date=payload.start_date,
            workout_plan_id=payload.workout_plan_id,
            diet_plan_id=payload.diet_plan_id,
            end_date=payload.end_date,
            notes=payload.notes,
            duration_weeks=payload.duration_weeks,
        ),
        caller,
        correlation_id,
    )
    return _ok(program)


@router.get("/programs")
def list_programs(
    client_id: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    """Return programs; trainers see the ones they assigned, clients their own."""
    criteria = {"client_id": client_id, "status": status_filter}
    return _paged(service.list_page(EntityType.program, criteria, caller, page=page, limit=limit))


@router.get("/programs/clients/{client_id}/active")
def list_active_programs(
    client_id: str,
    caller: Caller = Depends(get_caller),
    service: ProgramService = Depends(get_program_service),
) -> dict[str, Any]:
    return _ok(service.list_active_programs(client_id, caller))


@router.get("/programs/{program_id}")
def get_program(
    program_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TrainingService = Depends(get_training_service),
) -> dict[str, Any]:
    return _ok(service.get(EntityType.program, str(program_id)))


@router.put("/programs/{program_id}/status")
def update_program_status(
    program_id: UUID,
    payload: ProgramStatusRequest,
    caller: Caller = Depends(staff_only),
    service: ProgramService = Depends(get_program_service),
    correlation_id: str | None = Depends(get_correlation_id),
) -> dict[str, Any]:
    return _ok(service.update_status(str(program_id), payload.status, correlation_id))


@router.put("/programs/{program_id}/complete")
def complete_program(
    program_id: UUID,
    payload: ProgramCompleteRequest | None = None,
    caller: Caller = Depends(staff_only),
    service: ProgramService = Depends(get_program_service),
    correlation_id: str | None = Depends(get_correlation_id),
) -> dict[str, Any]:
    """Mark a program completed, optionally recording the client's adherence rate."""
    adherence_rate = payload.adherence_rate if payload else None
    return _ok(service.complete_program(str(program_id), adherence_rate, correlation_id))
