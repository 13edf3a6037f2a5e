from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from app.utils.dates import utc_now

class MeasurementSource(str, Enum):
    OCR = "ocr"
    MANUAL = "manual"

class Measurement(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # The metric key never changes once the row exists
    metric: str = Field(index=True)
    value: float
    unit: str
    measured_at: datetime = Field(default_factory=utc_now, index=True)

    source: MeasurementSource = Field(default=MeasurementSource.MANUAL)
    confidence: Optional[float] = None  # 0-1, OCR only
    notes: Optional[str] = None
    image_url: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class MetricCatalog(SQLModel, table=True):
    """Display metadata for metric keys, shared by all users."""
    __tablename__ = "metrics_catalog"

    key: str = Field(primary_key=True)
    display_name: str
    category: str = "General"
    unit: Optional[str] = None
