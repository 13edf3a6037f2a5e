from datetime import datetime, timedelta, timezone

import pytest

from app.models.measurement import Measurement, MeasurementSource, MetricCatalog
from app.schemas.measurement import SortDirection, SortField
from app.services.measurement_service import (
    SPARKLINE_MAX_POINTS,
    MeasurementSort,
    build_metric_summaries,
    humanize_metric_key,
    parse_timestamp,
    sort_measurements,
)


def test_equal_dates_keep_input_order_in_both_directions():
    items = [{"measured_at": "2024-01-01", "value": 5}, {"measured_at": "2024-01-01", "value": 3}]
    assert sort_measurements(items, "date", "desc") == items
    assert sort_measurements(items, "date", "asc") == items


def test_equal_values_keep_input_order():
    items = [
        {"id": 1, "measured_at": "2024-01-03", "value": 7},
        {"id": 2, "measured_at": "2024-01-01", "value": 7},
        {"id": 3, "measured_at": "2024-01-02", "value": 1},
    ]
    assert [m["id"] for m in sort_measurements(items, "value", "desc")] == [1, 2, 3]
    assert [m["id"] for m in sort_measurements(items, "value", "asc")] == [3, 1, 2]


def test_value_sort_is_numeric():
    items = [{"measured_at": "2024-01-01", "value": v} for v in (10, 9.5, 100)]
    assert [m["value"] for m in sort_measurements(items, SortField.VALUE, SortDirection.ASC)] == [9.5, 10, 100]


def test_date_sort_parses_mixed_timestamps():
    items = [
        {"id": "b", "measured_at": "2024-01-02T00:00:00Z", "value": 1},
        {"id": "a", "measured_at": datetime(2024, 1, 1, 12, 0), "value": 1},
        {"id": "c", "measured_at": "2024-01-03", "value": 1},
    ]
    assert [m["id"] for m in sort_measurements(items, "date", "desc")] == ["c", "b", "a"]


def test_returns_new_list_without_touching_input():
    items = [{"measured_at": "2024-01-01", "value": 1}, {"measured_at": "2024-02-01", "value": 2}]
    snapshot = list(items)
    result = sort_measurements(items)
    assert result is not items
    assert items == snapshot
    assert result[0]["value"] == 2


def test_empty_input():
    assert sort_measurements(None) == []
    assert sort_measurements([]) == []


def test_sort_toggle():
    sorter = MeasurementSort()
    assert (sorter.field, sorter.direction) == (SortField.DATE, SortDirection.DESC)

    sorter.toggle("date")
    assert sorter.direction == SortDirection.ASC
    sorter.toggle("date")
    assert sorter.direction == SortDirection.DESC

    sorter.toggle("date")
    sorter.toggle("value")
    assert (sorter.field, sorter.direction) == (SortField.VALUE, SortDirection.DESC)
    sorter.toggle(SortField.VALUE)
    assert sorter.direction == SortDirection.ASC

    items = [{"measured_at": "2024-01-01", "value": 3}, {"measured_at": "2024-01-02", "value": 1}]
    assert [m["value"] for m in sorter.apply(items)] == [1, 3]


def test_humanize_metric_key():
    assert humanize_metric_key("body_fat_percentage") == "Body Fat Percentage"
    assert humanize_metric_key("hdl") == "Hdl"


def _measurement(metric, value, days_ago, base=datetime(2024, 6, 1, tzinfo=timezone.utc)):
    return Measurement(
        user_id=1, metric=metric, value=value, unit="kg",
        measured_at=base - timedelta(days=days_ago), source=MeasurementSource.MANUAL,
    )


def test_summary_sparkline_is_bounded_and_chronological():
    rows = [_measurement("weight", 80 - i * 0.1, i) for i in range(35)]
    catalog = {"weight": MetricCatalog(key="weight", display_name="Body Weight", category="Body Composition")}

    [summary] = build_metric_summaries(rows, catalog)
    assert summary.display_name == "Body Weight"
    assert summary.category == "Body Composition"
    assert summary.latest_value == 80
    assert summary.point_count == 35
    assert len(summary.sparkline_points) == SPARKLINE_MAX_POINTS
    dates = [point.date for point in summary.sparkline_points]
    assert dates == sorted(dates)
    assert summary.sparkline_points[-1].value == 80


def test_summary_falls_back_to_generated_name():
    [summary] = build_metric_summaries([_measurement("waist_size", 82, 0)], {})
    assert summary.display_name == "Waist Size"
    assert summary.category == "General"


def test_parse_timestamp():
    assert parse_timestamp("2024-01-02T03:00:00Z") == datetime(2024, 1, 2, 3, tzinfo=timezone.utc)
    assert parse_timestamp(datetime(2024, 1, 2)).tzinfo == timezone.utc
    offset = timezone(timedelta(hours=2))
    assert parse_timestamp(datetime(2024, 1, 2, 5, tzinfo=offset)) == datetime(2024, 1, 2, 3, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, 1704067200])
def test_parse_timestamp_rejects_missing_or_numeric(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_date_sort_reports_missing_timestamp():
    with pytest.raises(ValueError, match="measured_at is required"):
        sort_measurements([{"value": 1}, {"measured_at": "2024-01-01", "value": 2}], "date")
