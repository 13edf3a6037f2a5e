from pydantic import BaseModel
from typing import Optional, List

from app.models.exercise import MovementType

class ExerciseData(BaseModel):
    name: str
    primary_muscles: List[str] = []
    secondary_muscles: List[str] = []
    equipment: Optional[str] = None
    movement_type: Optional[MovementType] = None

class ExerciseResponse(ExerciseData):
    id: int
    search_key: str
    equipment: str
    difficulty: Optional[str] = None
    instructions: Optional[str] = None

    class Config:
        from_attributes = True

class ExerciseSearchResponse(BaseModel):
    success: bool = True
    exercises: List[ExerciseResponse]
