from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional, List
from datetime import datetime
from enum import Enum

from app.utils.dates import utc_now

class MovementType(str, Enum):
    COMPOUND = "compound"
    ISOLATION = "isolation"

class Exercise(SQLModel, table=True):
    """Catalog entry, read-mostly reference data shared across users."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    search_key: str = Field(unique=True, index=True)

    primary_muscles: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    secondary_muscles: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    equipment: str = "bodyweight"
    movement_type: Optional[MovementType] = None
    difficulty: Optional[str] = None
    instructions: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
