import logging
import re
from datetime import date
from functools import lru_cache
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.api.auth import get_current_user
from app.config import settings
from app.crud.exercise import get_exercise
from app.crud import workout as workout_crud
from app.database import get_session
from app.errors import NotFoundError, RateLimitError, ValidationError
from app.models.user import User
from app.models.workout import Workout, WorkoutExercise
from app.schemas.workout import (
    AddExerciseRequest,
    ReorderExercisesRequest,
    SetDetailsUpdate,
    SetEntriesResponse,
    SetEntryResponse,
    WorkoutEnvelope,
    WorkoutExerciseResponse,
    WorkoutGenerationRequest,
    WorkoutRating,
    WorkoutResponse,
    WorkoutUpdate,
)
from app.services.workout_generator import WorkoutGenerator
from app.utils.sanitize import sanitize_set_details, sanitize_special_instructions, sanitize_workout_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workouts", tags=["workouts"])

MAX_WORKOUT_NAME_LENGTH = 50
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@lru_cache()
def get_workout_generator() -> WorkoutGenerator:
    return WorkoutGenerator()


def _owned_workout(session: Session, user: User, workout_id: int) -> Workout:
    workout = workout_crud.get_user_workout(session, user.id, workout_id)
    if not workout:
        raise NotFoundError("Workout not found or unauthorized")
    return workout


def _workout_exercise_in(session: Session, workout: Workout, workout_exercise_id: int) -> WorkoutExercise:
    link = workout_crud.get_workout_exercise(session, workout_exercise_id)
    if not link:
        raise NotFoundError("Workout exercise not found")
    if link.workout_id != workout.id:
        raise ValidationError("Workout mismatch")
    return link


def serialize_workout(session: Session, workout: Workout) -> WorkoutResponse:
    """Workout with its exercises in order"""
    exercises = [
        WorkoutExerciseResponse(
            id=link.id,
            exercise_id=exercise.id,
            name=exercise.name,
            order_index=link.order_index,
            sets=link.sets,
            reps=link.reps,
            rest_seconds=link.rest_seconds,
            weight_unit=link.weight_unit,
            weight_recommendation=link.weight_recommendation,
            rationale=link.rationale,
            notes=link.notes,
            completed=link.completed,
            primary_muscles=exercise.primary_muscles or [],
            secondary_muscles=exercise.secondary_muscles or [],
            equipment=exercise.equipment,
        )
        for link, exercise in workout_crud.get_workout_exercises(session, workout.id)
    ]
    data = workout.model_dump(exclude={"user_id", "workout_data", "raw_ai_response"})
    return WorkoutResponse(**data, exercises=exercises)


@router.post("/generate", response_model=WorkoutEnvelope, status_code=status.HTTP_201_CREATED)
async def generate_workout(
    request: WorkoutGenerationRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    generator: WorkoutGenerator = Depends(get_workout_generator)
) -> WorkoutEnvelope:
    """Generate a workout with the AI model and save it"""
    if not request.muscle_focus:
        raise ValidationError("At least one muscle group must be selected")
    if not request.workout_focus:
        raise ValidationError("At least one workout focus must be selected")

    limit = settings.WORKOUT_GENERATION_DAILY_LIMIT
    if workout_crud.count_recent_workouts(session, current_user.id) >= limit:
        raise RateLimitError(f"Rate limit exceeded. You can generate up to {limit} workouts per day.")

    instructions = sanitize_special_instructions(request.special_instructions)
    logger.info("Generating workout for user %s: muscles=%s focus=%s count=%s",
                current_user.id, request.muscle_focus, request.workout_focus, request.exercise_count)

    result = await generator.generate(request, instructions)
    workout = generator.save_generated_workout(session, current_user.id, request, result, instructions)

    return WorkoutEnvelope(workout=serialize_workout(session, workout), message="Workout generated successfully")


@router.get("", response_model=List[WorkoutResponse])
async def list_workouts(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> List[WorkoutResponse]:
    """Get the user's workouts, newest first"""
    workouts = workout_crud.get_user_workouts(session, current_user.id, skip=skip, limit=limit)
    return [serialize_workout(session, workout) for workout in workouts]


@router.get("/{workout_id}", response_model=WorkoutResponse)
async def read_workout(
    workout_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> WorkoutResponse:
    return serialize_workout(session, _owned_workout(session, current_user, workout_id))


@router.put("/{workout_id}", response_model=WorkoutEnvelope)
async def update_workout(
    workout_id: int,
    update: WorkoutUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> WorkoutEnvelope:
    """Rename, schedule or complete a workout"""
    changes = {}
    sent = update.model_fields_set

    if "name" in sent and update.name is not None:
        trimmed = update.name.strip()
        if len(trimmed) > MAX_WORKOUT_NAME_LENGTH:
            raise ValidationError("Name cannot exceed 50 characters")
        changes["name"] = sanitize_workout_name(trimmed) if trimmed else None

    if "target_date" in sent:
        raw_date = (update.target_date or "").strip()
        if not raw_date:
            changes["target_date"] = None
        else:
            if not _ISO_DATE_RE.match(raw_date):
                raise ValidationError("target_date must be in YYYY-MM-DD format")
            try:
                changes["target_date"] = date.fromisoformat(raw_date)
            except ValueError:
                raise ValidationError("Invalid target_date value")

    if "status" in sent and update.status is not None:
        changes["status"] = update.status

    workout = _owned_workout(session, current_user, workout_id)
    workout = workout_crud.update_workout(session, workout, changes)
    return WorkoutEnvelope(workout=serialize_workout(session, workout))


@router.delete("/{workout_id}")
async def delete_workout(
    workout_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    workout = _owned_workout(session, current_user, workout_id)
    workout_crud.delete_workout(session, workout)
    return {"success": True}


@router.post("/{workout_id}/rate", response_model=WorkoutEnvelope)
async def rate_workout(
    workout_id: int,
    rating: WorkoutRating,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> WorkoutEnvelope:
    """Rate a workout from 1 to 6"""
    workout = _owned_workout(session, current_user, workout_id)
    workout = workout_crud.rate_workout(session, workout, rating.rating)
    return WorkoutEnvelope(workout=serialize_workout(session, workout), message="Rating saved successfully")


@router.post("/{workout_id}/exercises", response_model=WorkoutEnvelope)
async def add_exercise(
    workout_id: int,
    request: AddExerciseRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> WorkoutEnvelope:
    """Append a catalog exercise to the workout"""
    workout = _owned_workout(session, current_user, workout_id)

    exercise = get_exercise(session, request.exercise_id)
    if not exercise:
        raise NotFoundError("Exercise not found")
    if workout_crud.find_workout_exercise(session, workout.id, exercise.id):
        raise ValidationError("Exercise already in workout")

    workout_crud.add_exercise_to_workout(session, workout, exercise)
    session.refresh(workout)
    return WorkoutEnvelope(workout=serialize_workout(session, workout), message="Exercise added successfully")


@router.delete("/{workout_id}/exercises/{workout_exercise_id}", response_model=WorkoutEnvelope)
async def remove_exercise(
    workout_id: int,
    workout_exercise_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> WorkoutEnvelope:
    workout = _owned_workout(session, current_user, workout_id)
    if not workout_crud.remove_exercise_from_workout(session, workout, workout_exercise_id):
        raise NotFoundError("Exercise not found in workout")
    session.refresh(workout)
    return WorkoutEnvelope(workout=serialize_workout(session, workout), message="Exercise removed successfully")


@router.post("/{workout_id}/exercises/reorder", response_model=WorkoutEnvelope)
async def reorder_exercises(
    workout_id: int,
    request: ReorderExercisesRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> WorkoutEnvelope:
    """Set the exercise order to the order of ``exercise_ids``"""
    workout = _owned_workout(session, current_user, workout_id)
    workout = workout_crud.reorder_workout_exercises(session, workout, request.exercise_ids)
    return WorkoutEnvelope(workout=serialize_workout(session, workout))


@router.get("/{workout_id}/exercises/{workout_exercise_id}/sets", response_model=SetEntriesResponse)
async def read_set_entries(
    workout_id: int,
    workout_exercise_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> SetEntriesResponse:
    """Logged sets of one exercise in the workout"""
    workout = _owned_workout(session, current_user, workout_id)
    link = _workout_exercise_in(session, workout, workout_exercise_id)
    entries = workout_crud.get_set_entries(session, link.id)
    return SetEntriesResponse(entries=[SetEntryResponse.model_validate(entry) for entry in entries])


@router.put("/{workout_id}/exercises/{workout_exercise_id}/sets", response_model=WorkoutEnvelope)
async def update_set_entries(
    workout_id: int,
    workout_exercise_id: int,
    update: SetDetailsUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> WorkoutEnvelope:
    """Replace the logged sets of one exercise; unusable entries are dropped"""
    details = sanitize_set_details(update.set_details)
    if not details:
        raise ValidationError("At least one set detail is required")

    workout = _owned_workout(session, current_user, workout_id)
    link = _workout_exercise_in(session, workout, workout_exercise_id)

    workout = workout_crud.replace_set_entries(session, workout, link, details)
    logger.info("Logged %s sets for workout exercise %s", len(details), link.id)
    return WorkoutEnvelope(workout=serialize_workout(session, workout), message="Sets saved successfully")
