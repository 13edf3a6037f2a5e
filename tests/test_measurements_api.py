from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.config import MEASUREMENTS_QUERY_OPTIONS, REALTIME_QUERY_OPTIONS
from app.crud.measurement import seed_metrics_catalog
from app.errors import ForbiddenError, UnauthorizedError
from app.models.user import User
from app.services.measurement_service import get_metric_detail


def add(client, headers, metric="weight", value=80.0, measured_at="2024-01-01T08:00:00", **extra):
    payload = {"metric": metric, "value": value, "unit": "kg", "measured_at": measured_at, **extra}
    response = client.post("/api/v1/measurements", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_requires_authentication(client):
    response = client.get("/api/v1/measurements/weight")
    assert response.status_code == 401
    assert response.json() == {"detail": "Missing token"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_rejects_invalid_token(client):
    response = client.get("/api/v1/measurements/weight", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid token"}


def test_metric_detail_newest_first(client, session, auth_headers):
    seed_metrics_catalog(session)
    add(client, auth_headers, value=81.0, measured_at="2024-01-01T08:00:00")
    add(client, auth_headers, value=79.5, measured_at="2024-03-01T08:00:00")
    add(client, auth_headers, value=80.2, measured_at="2024-02-01T08:00:00")

    response = client.get("/api/v1/measurements/weight", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["metric"] == "weight"
    assert body["display_name"] == "Body Weight"
    assert [m["value"] for m in body["measurements"]] == [79.5, 80.2, 81.0]
    assert "query_time_ms" not in body
    assert response.headers["Cache-Control"] == MEASUREMENTS_QUERY_OPTIONS.cache_control()


def test_metric_detail_sort_params(client, auth_headers):
    add(client, auth_headers, value=81.0, measured_at="2024-01-01T08:00:00")
    add(client, auth_headers, value=79.5, measured_at="2024-03-01T08:00:00")

    response = client.get("/api/v1/measurements/weight?sort=value&direction=asc", headers=auth_headers)
    assert [m["value"] for m in response.json()["measurements"]] == [79.5, 81.0]

    response = client.get("/api/v1/measurements/weight?sort=date&direction=asc", headers=auth_headers)
    assert [m["value"] for m in response.json()["measurements"]] == [81.0, 79.5]

    response = client.get("/api/v1/measurements/weight?sort=height", headers=auth_headers)
    assert response.status_code == 422


def test_unknown_metric_gets_readable_name_and_empty_list(client, auth_headers):
    response = client.get("/api/v1/measurements/waist_size", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["display_name"] == "Waist Size"
    assert response.json()["measurements"] == []


def test_only_own_measurements_are_returned(client, auth_headers, other_headers):
    add(client, auth_headers, value=80.0)
    add(client, other_headers, value=60.0)

    response = client.get("/api/v1/measurements/weight", headers=other_headers)
    assert [m["value"] for m in response.json()["measurements"]] == [60.0]


def test_explicit_owner_must_be_caller(client, auth_headers, other_headers):
    add(client, auth_headers)
    own_id = client.get("/api/v1/auth/me", headers=auth_headers).json()["id"]

    response = client.get(f"/api/v1/measurements/weight?user_id={own_id}", headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()["measurements"]) == 1

    response = client.get(f"/api/v1/measurements/weight?user_id={own_id}", headers=other_headers)
    assert response.status_code == 403


def test_create_validates_and_sanitizes(client, auth_headers):
    response = client.post(
        "/api/v1/measurements",
        json={"metric": "weight", "value": 20000, "unit": "kg"},
        headers=auth_headers,
    )
    assert response.status_code == 422

    response = client.post(
        "/api/v1/measurements",
        json={"metric": "Body Weight", "value": 80, "unit": "kg"},
        headers=auth_headers,
    )
    assert response.status_code == 422

    created = add(client, auth_headers, notes="<b>Morning</b> weigh-in @ home<script>x()</script>")
    assert created["notes"].startswith("Morning weigh-in")
    assert "<" not in created["notes"] and "@" not in created["notes"]
    assert created["source"] == "manual"


def test_edit_and_delete_are_owner_only(client, auth_headers, other_headers):
    created = add(client, auth_headers, value=80.0)
    url = f"/api/v1/measurements/entries/{created['id']}"
    changes = {"value": 78.0, "unit": "kg", "measured_at": "2024-01-02T08:00:00"}

    assert client.patch(url, json=changes, headers=other_headers).status_code == 404
    assert client.delete(url, headers=other_headers).status_code == 404

    response = client.patch(url, json=changes, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["value"] == 78.0
    assert response.json()["data"]["metric"] == "weight"

    assert client.delete(url, headers=auth_headers).json() == {"success": True}
    assert client.get("/api/v1/measurements/weight", headers=auth_headers).json()["measurements"] == []


def test_summary(client, session, auth_headers):
    seed_metrics_catalog(session)
    add(client, auth_headers, value=81.0, measured_at="2024-01-01T08:00:00")
    add(client, auth_headers, value=80.0, measured_at="2024-02-01T08:00:00")
    add(client, auth_headers, metric="resting_heart_rate", value=58, measured_at="2024-02-01T08:00:00")

    response = client.get("/api/v1/measurements/summary", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["Cache-Control"] == REALTIME_QUERY_OPTIONS.cache_control()

    metrics = {m["metric"]: m for m in response.json()["metrics"]}
    assert metrics["weight"]["latest_value"] == 80.0
    assert metrics["weight"]["point_count"] == 2
    assert [p["value"] for p in metrics["weight"]["sparkline_points"]] == [81.0, 80.0]
    assert metrics["resting_heart_rate"]["category"] == "Cardiovascular"


def test_database_failure_is_reported_without_details(client, session, auth_headers, monkeypatch):
    def failing_exec(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "exec", failing_exec)
    response = client.get("/api/v1/measurements/weight", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_access_checks_run_before_any_query():
    session = MagicMock()
    with pytest.raises(UnauthorizedError):
        get_metric_detail(session, None, "weight")
    with pytest.raises(ForbiddenError):
        get_metric_detail(session, User(id=1, email="a@b.co", hashed_password="x"), "weight", owner_id=2)
    session.exec.assert_not_called()
