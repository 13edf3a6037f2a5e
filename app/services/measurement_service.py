import logging
import re
import time
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.config import settings, QueryOptions, MEASUREMENTS_QUERY_OPTIONS
from app.errors import BackendError, ForbiddenError, UnauthorizedError
from app.models.measurement import Measurement, MetricCatalog
from app.models.user import User
from app.schemas.measurement import (
    MeasurementPublic,
    MetricDetailResponse,
    MetricSummary,
    SortDirection,
    SortField,
    SparklinePoint,
)
from app.utils.dates import as_utc

logger = logging.getLogger(__name__)

SPARKLINE_MAX_POINTS = 30

_WORD_START_RE = re.compile(r"\b\w")


def humanize_metric_key(key: str) -> str:
    """``body_fat_percentage`` -> ``Body Fat Percentage``"""
    return _WORD_START_RE.sub(lambda match: match.group(0).upper(), key.replace("_", " "))


def _ensure_caller(current_user: Optional[User], owner_id: Optional[int] = None) -> User:
    if current_user is None or current_user.id is None:
        raise UnauthorizedError()
    if owner_id is not None and owner_id != current_user.id:
        raise ForbiddenError("Measurements belong to another user")
    return current_user


# ---------------------------------------------------------------- sorting

def _get(item: Any, field: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(field)
    return getattr(item, field, None)


def parse_timestamp(value: Union[str, datetime, None]) -> datetime:
    """Parse an ISO date/timestamp; naive values are taken as UTC."""
    if value is None:
        raise ValueError("measured_at is required to sort by date")
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"measured_at must be a timestamp, got {type(value).__name__}")
    return as_utc(value)


def sort_measurements(
    measurements: Optional[Iterable[Any]],
    field: Union[SortField, str] = SortField.DATE,
    direction: Union[SortDirection, str] = SortDirection.DESC,
) -> List[Any]:
    """Return a new list of measurements ordered by date or value.

    Items may be mappings or objects exposing ``measured_at`` and ``value``.
    Equal keys keep their input order in both directions.
    """
    if not measurements:
        return []

    field = SortField(field)
    direction = SortDirection(direction)

    if field == SortField.DATE:
        key = lambda item: parse_timestamp(_get(item, "measured_at"))
    else:
        key = lambda item: float(_get(item, "value"))

    # sorted() stays stable with reverse=True
    return sorted(measurements, key=key, reverse=direction == SortDirection.DESC)


class MeasurementSort:
    """Sort state for a measurement table.

    Starts on date, newest first. Toggling the active field flips the
    direction; picking another field switches to it in descending order.
    """

    def __init__(self, field: SortField = SortField.DATE, direction: SortDirection = SortDirection.DESC):
        self.field = SortField(field)
        self.direction = SortDirection(direction)

    def toggle(self, field: Union[SortField, str]) -> None:
        field = SortField(field)
        if field == self.field:
            self.direction = SortDirection.ASC if self.direction == SortDirection.DESC else SortDirection.DESC
        else:
            self.field = field
            self.direction = SortDirection.DESC

    def apply(self, measurements: Optional[Iterable[Any]]) -> List[Any]:
        return sort_measurements(measurements, self.field, self.direction)


# ---------------------------------------------------------------- retrieval

def _catalog_entry(session: Session, metric: str) -> Optional[MetricCatalog]:
    return session.get(MetricCatalog, metric)


def get_metric_detail(
    session: Session,
    current_user: Optional[User],
    metric: str,
    owner_id: Optional[int] = None,
    options: QueryOptions = MEASUREMENTS_QUERY_OPTIONS,
) -> MetricDetailResponse:
    """Every measurement the caller owns for ``metric``, newest first.

    Access to another user's records is rejected before anything is read.
    A metric with no rows yields an empty list.
    """
    user = _ensure_caller(current_user, owner_id)
    start_time = time.perf_counter()

    try:
        rows = session.exec(
            select(Measurement)
            .where(Measurement.user_id == user.id, Measurement.metric == metric)
            .order_by(Measurement.measured_at.desc())
        ).all()
        catalog = _catalog_entry(session, metric)
    except SQLAlchemyError as e:
        raise BackendError(f"Failed to load measurements for {metric}: {e}") from e

    display_name = catalog.display_name if catalog else humanize_metric_key(metric)
    query_time = int((time.perf_counter() - start_time) * 1000)
    logger.info(
        "Metric detail query: %sms, %s measurements (stale_time=%ss)",
        query_time, len(rows), options.stale_time,
    )

    return MetricDetailResponse(
        metric=metric,
        display_name=display_name,
        measurements=[MeasurementPublic.model_validate(row) for row in rows],
        query_time_ms=query_time if settings.ENVIRONMENT == "development" else None,
    )


def build_metric_summaries(
    measurements: Iterable[Measurement],
    catalog: Dict[str, MetricCatalog],
    max_points: int = SPARKLINE_MAX_POINTS,
) -> List[MetricSummary]:
    """Group measurements per metric into display summaries.

    ``measurements`` must be ordered newest first. The sparkline keeps the
    most recent ``max_points`` values, oldest first.
    """
    grouped: "OrderedDict[str, List[Measurement]]" = OrderedDict()
    for measurement in measurements:
        grouped.setdefault(measurement.metric, []).append(measurement)

    summaries = []
    for metric, rows in grouped.items():
        latest = rows[0]
        entry = catalog.get(metric)
        points = [SparklinePoint(value=row.value, date=row.measured_at) for row in rows[:max_points]]
        points.reverse()
        summaries.append(MetricSummary(
            metric=metric,
            display_name=entry.display_name if entry else humanize_metric_key(metric),
            category=entry.category if entry else "General",
            latest_value=latest.value,
            unit=latest.unit,
            latest_date=latest.measured_at,
            source=latest.source,
            confidence=latest.confidence,
            sparkline_points=points,
            point_count=len(rows),
        ))
    return summaries


def get_measurements_summary(
    session: Session,
    current_user: Optional[User],
    options: QueryOptions = MEASUREMENTS_QUERY_OPTIONS,
) -> List[MetricSummary]:
    user = _ensure_caller(current_user)
    start_time = time.perf_counter()

    try:
        rows = session.exec(
            select(Measurement)
            .where(Measurement.user_id == user.id)
            .order_by(Measurement.metric, Measurement.measured_at.desc())
        ).all()
        catalog = {entry.key: entry for entry in session.exec(select(MetricCatalog)).all()}
    except SQLAlchemyError as e:
        raise BackendError(f"Failed to load measurements summary: {e}") from e

    summaries = build_metric_summaries(rows, catalog)
    query_time = int((time.perf_counter() - start_time) * 1000)
    logger.info(
        "Measurements summary query: %sms, %s metrics (stale_time=%ss)",
        query_time, len(summaries), options.stale_time,
    )
    return summaries
