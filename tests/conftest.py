import json
import os
from types import SimpleNamespace

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from app.database import build_engine, get_session
from app.main import app as fastapi_app


class FakeCompletions:
    """Stands in for ``client.chat.completions``; replies from a script."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.replies.pop(0)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=340),
        )


class FakeOpenAI:
    def __init__(self, replies):
        self.chat = SimpleNamespace(completions=FakeCompletions(replies))


def workout_reply(exercises=None, **workout):
    """JSON text shaped like a model answer."""
    if exercises is None:
        exercises = [
            {"name": "Barbell Bench Press", "sets": 4, "reps": 8, "rest_time_seconds": 120,
             "rationale": "Keep shoulder blades pinned.", "primary_muscles": ["chest"],
             "secondary_muscles": ["triceps", "shoulders"], "equipment": "barbell"},
            {"name": "Cable Fly", "sets": 3, "reps": "12-15", "rest_time_seconds": 60,
             "rationale": "Slow on the way back.", "primary_muscles": "chest",
             "secondary_muscles": []},
        ]
    body = {"name": "Chest Builder", "exercises": exercises, "total_duration_minutes": 45,
            "joint_groups_affected": "Shoulders, elbows", "equipment_needed": "Barbell, cable"}
    body.update(workout)
    return json.dumps({"workout": body})


@pytest.fixture(name="session")
def session_fixture():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session):
    def get_session_override():
        return session

    fastapi_app.dependency_overrides[get_session] = get_session_override
    with TestClient(fastapi_app) as client:
        yield client
    fastapi_app.dependency_overrides.clear()


def register_and_login(client, email, password="s3cret-pass"):
    response = client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client, "lifter@fittrack.app")


@pytest.fixture
def other_headers(client):
    return register_and_login(client, "runner@fittrack.app")
