from pydantic import BaseModel, Field
from typing import Any, Optional, List, Union
from datetime import datetime, date

from app.models.workout import WorkoutStatus

class WorkoutGenerationRequest(BaseModel):
    muscle_focus: List[str] = []
    workout_focus: List[str] = []
    exercise_count: int = Field(default=4, ge=1, le=15)
    special_instructions: Optional[str] = Field(default=None, max_length=1000)
    difficulty: Optional[str] = None

class WorkoutUpdate(BaseModel):
    name: Optional[str] = None
    target_date: Optional[str] = None
    status: Optional[WorkoutStatus] = None

class WorkoutRating(BaseModel):
    rating: int = Field(ge=1, le=6)

class AddExerciseRequest(BaseModel):
    exercise_id: int

class ReorderExercisesRequest(BaseModel):
    exercise_ids: List[int]

class SetDetail(BaseModel):
    """One logged set."""
    set_number: int = Field(ge=1)
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    rest_seconds: Optional[int] = None
    notes: Optional[str] = None

class SetDetailsUpdate(BaseModel):
    # Checked entry by entry; invalid entries are skipped
    set_details: Any = None

class SetEntryResponse(SetDetail):
    id: int

    class Config:
        from_attributes = True

class SetEntriesResponse(BaseModel):
    entries: List[SetEntryResponse]

class GeneratedExercise(BaseModel):
    """One exercise as returned by the model."""
    name: str
    sets: int = Field(gt=0)
    reps: Union[int, float, str]
    rest_time_seconds: Optional[int] = 60
    rationale: Optional[str] = None
    primary_muscles: Union[List[str], str, None] = None
    secondary_muscles: Union[List[str], str, None] = None
    equipment: Optional[str] = None
    movement_type: Optional[str] = None

class WorkoutExerciseResponse(BaseModel):
    id: int
    exercise_id: int
    name: str
    order_index: int
    sets: int
    reps: str
    rest_seconds: int
    weight_unit: str
    weight_recommendation: Optional[str] = None
    rationale: Optional[str] = None
    notes: Optional[str] = None
    completed: bool
    primary_muscles: List[str] = []
    secondary_muscles: List[str] = []
    equipment: Optional[str] = None

class WorkoutResponse(BaseModel):
    id: int
    name: Optional[str] = None
    muscle_focus: List[str]
    muscle_groups_targeted: str
    workout_focus: List[str]
    exercise_count: int
    special_instructions: Optional[str] = None
    total_duration_minutes: int
    joint_groups_affected: Optional[str] = None
    equipment_needed: Optional[str] = None
    total_exercises: int
    total_sets: int
    rating: Optional[int] = None
    target_date: Optional[date] = None
    status: WorkoutStatus
    created_at: datetime
    exercises: List[WorkoutExerciseResponse] = []

class WorkoutEnvelope(BaseModel):
    success: bool = True
    workout: WorkoutResponse
    message: Optional[str] = None
