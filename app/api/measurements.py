import logging
from typing import Optional
import time

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel import Session

from app.api.auth import get_current_user
from app.config import settings, MEASUREMENTS_QUERY_OPTIONS, REALTIME_QUERY_OPTIONS
from app.crud.measurement import create_measurement, delete_measurement, update_measurement
from app.database import get_session
from app.models.user import User
from app.schemas.measurement import (
    MeasurementCreate,
    MeasurementPublic,
    MeasurementUpdate,
    MeasurementsSummaryResponse,
    MetricDetailResponse,
    SortDirection,
    SortField,
)
from app.services.measurement_service import get_measurements_summary, get_metric_detail, sort_measurements

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/measurements", tags=["measurements"])

@router.get("/summary", response_model=MeasurementsSummaryResponse, response_model_exclude_none=True)
async def read_measurements_summary(
    response: Response,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> MeasurementsSummaryResponse:
    """Latest value and recent trend for every metric the user tracks"""
    start_time = time.perf_counter()
    metrics = get_measurements_summary(session, current_user, options=REALTIME_QUERY_OPTIONS)
    response.headers["Cache-Control"] = REALTIME_QUERY_OPTIONS.cache_control()

    query_time = int((time.perf_counter() - start_time) * 1000)
    return MeasurementsSummaryResponse(
        metrics=metrics,
        query_time_ms=query_time if settings.ENVIRONMENT == "development" else None
    )

@router.post("", response_model=MeasurementPublic, status_code=status.HTTP_201_CREATED)
async def add_measurement(
    measurement: MeasurementCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> MeasurementPublic:
    """Record a manual measurement"""
    return create_measurement(session, current_user.id, measurement)

@router.patch("/entries/{measurement_id}")
async def edit_measurement(
    measurement_id: int,
    measurement: MeasurementUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Edit a measurement's value, unit, date or notes"""
    updated = update_measurement(session, current_user.id, measurement_id, measurement)
    if not updated:
        raise HTTPException(status_code=404, detail="Measurement not found or unauthorized")
    return {"success": True, "data": MeasurementPublic.model_validate(updated)}

@router.delete("/entries/{measurement_id}")
async def remove_measurement(
    measurement_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Delete a measurement"""
    if not delete_measurement(session, current_user.id, measurement_id):
        raise HTTPException(status_code=404, detail="Measurement not found or unauthorized")
    return {"success": True}

@router.get("/{metric}", response_model=MetricDetailResponse, response_model_exclude_none=True)
async def read_metric_detail(
    metric: str,
    response: Response,
    sort: SortField = Query(SortField.DATE),
    direction: SortDirection = Query(SortDirection.DESC),
    user_id: Optional[int] = Query(None, description="Owner of the records; must be the caller"),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
) -> MetricDetailResponse:
    """All measurements of one metric, newest first unless asked otherwise"""
    detail = get_metric_detail(
        session,
        current_user,
        metric,
        owner_id=user_id,
        options=MEASUREMENTS_QUERY_OPTIONS
    )
    if sort != SortField.DATE or direction != SortDirection.DESC:
        detail.measurements = sort_measurements(detail.measurements, sort, direction)

    response.headers["Cache-Control"] = MEASUREMENTS_QUERY_OPTIONS.cache_control()
    return detail
