from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional, List, Dict, Any
from datetime import datetime, date
from enum import Enum

from app.utils.dates import utc_now

class WorkoutStatus(str, Enum):
    NEW = "new"
    TARGET = "target"
    MISSED = "missed"
    COMPLETED = "completed"

class Workout(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: Optional[str] = None

    # Derived from the workout's exercises, never edited directly
    muscle_focus: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    muscle_groups_targeted: str = ""

    # Generation inputs
    workout_focus: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    exercise_count: int = 0
    special_instructions: Optional[str] = None

    # AI output
    total_duration_minutes: int = 30
    joint_groups_affected: Optional[str] = None
    equipment_needed: Optional[str] = None
    workout_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    raw_ai_response: Optional[str] = None
    ai_model: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    generation_time_ms: Optional[int] = None
    parse_attempts: int = 1

    # Summary
    total_exercises: int = 0
    total_sets: int = 0

    # Scheduling and feedback
    rating: Optional[int] = Field(default=None, ge=1, le=6)
    target_date: Optional[date] = None
    status: WorkoutStatus = Field(default=WorkoutStatus.NEW)

    created_at: datetime = Field(default_factory=utc_now, index=True)

class WorkoutExercise(SQLModel, table=True):
    """An exercise placed in a workout, with workout-specific parameters."""
    id: Optional[int] = Field(default=None, primary_key=True)
    workout_id: int = Field(foreign_key="workout.id", index=True)
    exercise_id: int = Field(foreign_key="exercise.id")
    order_index: int = 0

    sets: int = 3
    reps: str = "10-12"  # text so "30 seconds" or "to failure" fit
    rest_seconds: int = 60
    weight_unit: str = "lbs"
    weight_recommendation: Optional[str] = None
    rationale: Optional[str] = None
    notes: Optional[str] = None
    completed: bool = False

class WorkoutSetEntry(SQLModel, table=True):
    """What the user actually did in one set of a workout exercise."""
    __tablename__ = "workout_set_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
    workout_exercise_id: int = Field(foreign_key="workoutexercise.id", index=True)
    set_number: int = Field(ge=1)
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    rest_seconds: Optional[int] = None
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
