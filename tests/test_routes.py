"""HTTP adapter tests using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

import routes.health_routes as health_routes
import routes.query_routes as query_routes
from main import app
from models import CountResult, ExtractedIntent
from pipeline import PipelineResult
from routes.query_routes import get_completion_client


@pytest.fixture
def llm(fake_llm):
    return fake_llm(models=["models/gemini-2.5-flash", "models/gemini-2.5-pro"])


@pytest.fixture
def client(llm):
    app.dependency_overrides[get_completion_client] = lambda: llm
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def captured(monkeypatch):
    """Replace the pipeline with a canned answer and record its arguments."""
    calls = []

    async def fake_pipeline(question, caller=None, history=None, **kwargs):
        calls.append({"question": question, "caller": caller, "history": history})
        result = PipelineResult()
        result.question = question
        result.resolved_question = question.replace("I ", "Maria ")
        result.intent = ExtractedIntent.model_validate(
            {"query_category": "attendance", "query_type": "count_absences"}
        )
        result.result = CountResult(count=3, status="absent", student="Maria")
        result.answer = "You were absent 3 times this month."
        result.stage = "completed"
        return result

    monkeypatch.setattr(query_routes, "run_pipeline", fake_pipeline)
    return calls


def test_query_returns_answer(client, captured):
    resp = client.post("/api/chat/query", json={
        "message": "Was I absent this month?",
        "caller": {"name": "Maria", "role": "student", "id": 5},
        "conversation_history": [{"role": "user", "content": "hello"}],
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["response"] == "You were absent 3 times this month."
    assert body["data"]["count"] == 3
    assert body["stage"] == "completed"
    assert body["debug"]["extracted_query"]["query_type"] == "count_absences"
    assert body["debug"]["resolved_question"] == "Was Maria absent this month?"

    assert captured[0]["caller"].name == "Maria"
    assert captured[0]["history"][0].content == "hello"


def test_query_when_model_unavailable(client, llm, captured):
    llm.available = False
    resp = client.post("/api/chat/query", json={"message": "anything"})

    assert resp.status_code == 503
    assert captured == []


@pytest.mark.parametrize("message", ["", "x" * 501])
def test_query_validates_message(client, captured, message):
    resp = client.post("/api/chat/query", json={"message": message})
    assert resp.status_code == 422


def test_status(client):
    body = client.get("/api/chat/status").json()
    assert body["available"] is True
    assert body["models"] == ["models/gemini-2.5-flash", "models/gemini-2.5-pro"]


def test_status_offline(client, llm):
    llm.available = False
    body = client.get("/api/chat/status").json()
    assert body["available"] is False
    assert body["models"] is None


def test_examples(client):
    examples = client.get("/api/chat/examples").json()["examples"]
    assert "How many times was I absent this month?" in examples


def test_health(client, monkeypatch):
    async def ok():
        return None

    monkeypatch.setattr(health_routes, "test_connection", ok)
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["db"] == "ok"
    assert set(body["config"]) >= {"gemini_api_key_set", "db_url_set", "gemini_model"}


def test_health_with_database_down(client, monkeypatch):
    async def down():
        raise ConnectionRefusedError("db:5432")

    monkeypatch.setattr(health_routes, "test_connection", down)
    assert client.get("/api/health").json()["db"] == "unreachable"


def test_schema(client):
    schema = client.get("/api/schema").json()["schema"]
    assert "attendance_records" in schema
    assert "created_at" not in schema["attendance_records"]["columns"]
