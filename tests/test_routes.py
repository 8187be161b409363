"""HTTP surface tests through FastAPI's TestClient."""

import json

import pytest
from fastapi.testclient import TestClient

from storyline.database import get_db
from storyline.dependencies import get_text_service
from storyline.main import app

from conftest import USER_ID, FakeTextService, make_record

API = "/storyline/api/v1"
HEADERS = {"X-User-Id": USER_ID}


def sse_events(response):
    """Split an event-stream body into decoded payloads, keeping the final [DONE] marker."""
    events = []
    for line in response.text.splitlines():
        if not line.startswith("data: "):
            continue
        payload = line[len("data: "):]
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events


@pytest.fixture
def text_service():
    return FakeTextService()


@pytest.fixture
def client(session_factory, text_service):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_service] = lambda: text_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def project(client):
    payload = {
        "core": {"title": "The Lantern Keeper", "theme": "Trust", "genre": "Mystery"},
        "outline": [{"title": "A"}, {"title": "B"}, {"title": "C"}],
    }
    response = client.post(f"{API}/projects", json=payload, headers=HEADERS)
    assert response.status_code == 200
    return response.json()


def outline_ids(project):
    return [entry["id"] for entry in project["outline"]]


class TestProjects:
    def test_requires_user_header(self, client):
        response = client.get(f"{API}/credits")
        assert response.status_code == 401

    def test_create_and_read(self, client, project):
        response = client.get(f"{API}/projects/{project['id']}", headers=HEADERS)

        assert response.status_code == 200
        assert [e["title"] for e in response.json()["outline"]] == ["A", "B", "C"]

    def test_unknown_project(self, client):
        response = client.get(f"{API}/projects/999", headers=HEADERS)

        assert response.status_code == 404
        assert response.json()["detail"]["type"] == "PROJECT_NOT_FOUND"

    def test_outline_edit_and_append(self, client, project):
        a = outline_ids(project)[0]

        response = client.patch(f"{API}/projects/{project['id']}/outline/{a}", json={"summary": "Docking."}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["outline"][0]["summary"] == "Docking."

        response = client.post(f"{API}/projects/{project['id']}/outline", json={"title": "D"}, headers=HEADERS)
        assert [e["position"] for e in response.json()["outline"]] == [0, 1, 2, 3]

    def test_setup_step(self, client, project, text_service):
        text_service.json_responses = [{"pov": "Close third"}]

        response = client.post(f"{API}/projects/{project['id']}/setup/INSTRUCTIONS", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["bible"]["instructions"]["pov"] == "Close third"


class TestChapters:
    def test_outline_status(self, client, project):
        response = client.get(f"{API}/projects/{project['id']}/outline/status", headers=HEADERS)

        assert [s["state"] for s in response.json()] == ["READY", "LOCKED", "LOCKED"]

    def test_generate_streams_events(self, client, project, text_service):
        a, b, c = outline_ids(project)
        text_service.fragments = ["The ferry ", "docked."]
        text_service.json_responses = [make_record(location="dock at midnight", items=["lantern"])]

        response = client.post(f"{API}/projects/{project['id']}/outline/{a}/generate", json={}, headers=HEADERS)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = sse_events(response)
        assert [e["content"] for e in events[:2]] == ["The ferry ", "docked."]
        assert events[2] == {"type": "phase", "phase": "ANALYZING"}
        assert events[3]["record"]["location"] == "dock at midnight"
        assert events[-1] == "[DONE]"

        chapter = client.get(f"{API}/projects/{project['id']}/outline/{a}/chapter", headers=HEADERS).json()
        assert chapter["content"] == "The ferry docked."
        assert chapter["continuity_record"]["items"] == ["lantern"]

        credits = client.get(f"{API}/credits", headers=HEADERS).json()
        assert credits == {"user_id": USER_ID, "credits": 95}

        can = client.get(f"{API}/projects/{project['id']}/outline/{b}/can-generate", headers=HEADERS).json()
        assert can == {"outline_id": b, "can_generate": True, "state": "READY"}

        context = client.get(f"{API}/projects/{project['id']}/outline/{b}/context", headers=HEADERS).json()
        assert "STARTING LOCATION: dock at midnight" in context["context"]

    def test_locked_position_rejected(self, client, project):
        a, b, c = outline_ids(project)

        response = client.post(f"{API}/projects/{project['id']}/outline/{c}/generate", json={}, headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["detail"]["blocking_outline_id"] == b

    def test_stream_error_reported_in_band(self, client, project, text_service):
        a = outline_ids(project)[0]
        text_service.fail_after = 1

        response = client.post(f"{API}/projects/{project['id']}/outline/{a}/generate", json={}, headers=HEADERS)

        events = sse_events(response)
        assert events[-2]["type"] == "GENERATION_STREAM_ERROR"
        assert events[-1] == "[DONE]"

    def test_insufficient_funds(self, client, project, text_service):
        a = outline_ids(project)[0]
        text_service.json_responses = [make_record() for _ in range(20)]
        for _ in range(20):
            response = client.post(f"{API}/projects/{project['id']}/outline/{a}/generate", json={}, headers=HEADERS)
            assert response.status_code == 200

        response = client.post(f"{API}/projects/{project['id']}/outline/{a}/generate", json={}, headers=HEADERS)

        assert response.status_code == 402
        assert response.json()["detail"]["balance"] == 0

    def test_analyze_retries_extraction(self, client, project, text_service):
        a = outline_ids(project)[0]
        text_service.json_responses = [{"summary": "No location."}, make_record(location="dock at midnight")]
        client.post(f"{API}/projects/{project['id']}/outline/{a}/generate", json={}, headers=HEADERS)

        response = client.post(f"{API}/projects/{project['id']}/outline/{a}/analyze", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["continuity_record"]["location"] == "dock at midnight"
        assert client.get(f"{API}/credits", headers=HEADERS).json()["credits"] == 95

    def test_export_joins_written_chapters_in_outline_order(self, client, project, text_service):
        a, b, c = outline_ids(project)
        text_service.fragments = ["The ferry docked."]
        text_service.json_responses = [make_record(location="dock at midnight")]
        client.post(f"{API}/projects/{project['id']}/outline/{a}/generate", json={}, headers=HEADERS)
        text_service.fragments = ["Mara ran."]
        text_service.json_responses = [make_record(location="the lighthouse")]
        client.post(f"{API}/projects/{project['id']}/outline/{b}/generate", json={}, headers=HEADERS)

        response = client.get(f"{API}/projects/{project['id']}/export", headers=HEADERS)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert "The_Lantern_Keeper.md" in response.headers["content-disposition"]
        assert response.text == "# A\n\nThe ferry docked.\n\n---\n\n# B\n\nMara ran."


class TestCreditsAndSettings:
    def test_cost_table(self, client):
        response = client.get(f"{API}/credits/costs", headers=HEADERS)

        assert response.json()["costs"] == {
            "complete_setup": 10,
            "single_page_setup": 2,
            "chapter_normal": 5,
            "chapter_long": 8,
        }

    def test_settings_list(self, client):
        response = client.get(f"{API}/settings", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == []
