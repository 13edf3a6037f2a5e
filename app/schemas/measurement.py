from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum

from app.models.measurement import MeasurementSource

class SortField(str, Enum):
    DATE = "date"
    VALUE = "value"

class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

class SparklinePoint(BaseModel):
    value: float
    date: datetime

class MeasurementCreate(BaseModel):
    metric: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    value: float = Field(ge=0, le=10000)
    unit: str = Field(min_length=1, max_length=20)
    measured_at: Optional[datetime] = None
    notes: Optional[str] = None

class MeasurementUpdate(BaseModel):
    value: float = Field(ge=0, le=10000)
    unit: str = Field(min_length=1, max_length=20)
    measured_at: Optional[datetime] = None
    notes: Optional[str] = None

class MeasurementPublic(BaseModel):
    """A measurement as returned to its owner."""
    id: int
    metric: str
    value: float
    unit: str
    measured_at: datetime
    source: MeasurementSource
    confidence: Optional[float] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class MetricSummary(BaseModel):
    metric: str
    display_name: str
    category: str
    latest_value: float
    unit: str
    latest_date: datetime
    source: MeasurementSource
    confidence: Optional[float] = None
    sparkline_points: List[SparklinePoint] = []
    point_count: int = 0

class MeasurementsSummaryResponse(BaseModel):
    metrics: List[MetricSummary]
    query_time_ms: Optional[int] = None

class MetricDetailResponse(BaseModel):
    metric: str
    display_name: str
    measurements: List[MeasurementPublic]
    query_time_ms: Optional[int] = None
