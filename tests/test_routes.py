"""HTTP tests for the API surface, run in-process against a temporary database."""

import pytest
from httpx import ASGITransport, AsyncClient

from learnpath.config import settings
from learnpath.db import documents
from learnpath.db.database import atomic
from learnpath.dependencies import get_ai_client
from learnpath.routes.auth import create_token
from learnpath.server import app

from conftest import FakeAIClient, all_correct, lesson_batch_reply, remedial_reply, three_correct


@pytest.fixture
def fake_ai():
    fake = FakeAIClient()
    app.dependency_overrides[get_ai_client] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
async def client(db_path, fake_ai):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_token('user-1')}"}


class TestAuth:
    async def test_health_is_public(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_missing_token(self, client, lessons):
        resp = await client.post(f"/assessments/{lessons[0]}/submit", json={"answers": all_correct()})
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"

    async def test_invalid_token(self, client, lessons):
        resp = await client.get(
            "/lessons/anything", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "unauthorized", "detail": "Invalid token"}


class TestSubmit:
    async def test_passed(self, client, lessons, auth_headers):
        resp = await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": all_correct()}, headers=auth_headers
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "status": "passed",
            "score": 100,
            "xpEarned": 50,
            "nextLessonId": "lesson-2",
        }

    async def test_requires_review(self, client, lessons, auth_headers):
        resp = await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": three_correct()}, headers=auth_headers
        )

        body = resp.json()
        assert resp.status_code == 200
        assert body["status"] == "requires_review"
        assert body["score"] == 75
        assert body["weakTags"] == ["equivalence", "simplifying"]
        assert body["remediation"] == {"mode": "retrieval", "snippets": []}

    async def test_synthesis_mode(self, client, lessons, auth_headers, fake_ai, monkeypatch):
        monkeypatch.setattr(settings, "remediation_mode", "synthesis")
        fake_ai.replies.append(remedial_reply())

        resp = await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": three_correct()}, headers=auth_headers
        )

        body = resp.json()
        assert resp.status_code == 200
        assert body["remediation"]["mode"] == "synthesis"
        assert body["remediation"]["lesson"]["title"] == "Equivalent fractions, again"

    async def test_synthesized_lessons_are_listed_for_the_caller(
        self, client, lessons, auth_headers, fake_ai, monkeypatch
    ):
        monkeypatch.setattr(settings, "remediation_mode", "synthesis")
        fake_ai.replies.append(remedial_reply())
        await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": three_correct()}, headers=auth_headers
        )

        resp = await client.get(f"/assessments/{lessons[0]}/remedial-lessons", headers=auth_headers)

        body = resp.json()
        assert resp.status_code == 200
        assert len(body) == 1
        assert body[0]["weakTags"] == ["equivalence", "simplifying"]
        assert body[0]["lesson"]["title"] == "Equivalent fractions, again"

        other = {"Authorization": f"Bearer {create_token('user-2')}"}
        resp = await client.get(f"/assessments/{lessons[0]}/remedial-lessons", headers=other)
        assert resp.json() == []

    async def test_synthesis_failure_is_still_a_200(self, client, lessons, auth_headers, fake_ai, monkeypatch):
        monkeypatch.setattr(settings, "remediation_mode", "synthesis")
        fake_ai.error = RuntimeError("provider down")

        resp = await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": three_correct()}, headers=auth_headers
        )

        assert resp.status_code == 200
        assert resp.json()["remediation"] is None
        assert resp.json()["remediationError"] == "upstream_failure"

    async def test_malformed_json(self, client, lessons, auth_headers):
        resp = await client.post(
            f"/assessments/{lessons[0]}/submit",
            content=b"{answers: nope",
            headers={**auth_headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "bad_request", "detail": "Invalid submission format"}

    async def test_wrong_shape(self, client, lessons, auth_headers):
        resp = await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": {"q1": "a"}}, headers=auth_headers
        )
        assert resp.status_code == 400

    async def test_unknown_lesson(self, client, lessons, auth_headers):
        resp = await client.post(
            "/assessments/nope/submit", json={"answers": all_correct()}, headers=auth_headers
        )
        assert resp.status_code == 404
        assert resp.json() == {"error": "not_found", "detail": "Lesson not found"}

    async def test_progress_after_submit(self, client, lessons, auth_headers):
        await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": three_correct()}, headers=auth_headers
        )
        await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": all_correct()}, headers=auth_headers
        )

        resp = await client.get(f"/assessments/{lessons[0]}/progress", headers=auth_headers)

        body = resp.json()
        assert resp.status_code == 200
        assert body["userId"] == "user-1"
        assert body["status"] == "completed"
        assert [a["score"] for a in body["attempts"]] == [75, 100]

    async def test_progress_is_per_caller(self, client, lessons, auth_headers):
        await client.post(
            f"/assessments/{lessons[0]}/submit", json={"answers": all_correct()}, headers=auth_headers
        )
        other = {"Authorization": f"Bearer {create_token('user-2')}"}

        resp = await client.get(f"/assessments/{lessons[0]}/progress", headers=other)
        assert resp.status_code == 404


class TestLessons:
    async def test_lessons_in_order_without_answer_keys(self, client, lessons, topic, auth_headers):
        resp = await client.get(f"/lessons/{topic.id}", headers=auth_headers)

        body = resp.json()
        assert resp.status_code == 200
        assert [l["id"] for l in body] == ["lesson-1", "lesson-2", "lesson-3"]
        question = body[0]["assessment"]["questions"][0]
        assert question["id"] == "q1"
        assert question["tags"] == ["numerator"]
        assert "correctAnswerId" not in question
        assert "explanation" not in question

    async def test_unknown_topic_is_empty(self, client, auth_headers, db_path):
        resp = await client.get("/lessons/unknown-topic", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == []

    async def test_invalid_topic_id(self, client, auth_headers, db_path):
        resp = await client.get("/lessons/bad%20topic%21", headers=auth_headers)
        assert resp.status_code == 400


class TestUserProfile:
    async def test_missing_profile(self, client, auth_headers):
        resp = await client.get("/user-profile/user-9", headers=auth_headers)
        assert resp.status_code == 404

    async def test_profile(self, client, db, auth_headers):
        async with atomic(db):
            await documents.upsert_user_profile(db, "user-1", {"displayName": "Sam", "level": 3})

        resp = await client.get("/user-profile/user-1", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json() == {"displayName": "Sam", "level": 3}


class TestGenerateLessons:
    async def test_generates_per_topic(self, client, auth_headers, fake_ai):
        fake_ai.replies.extend([lesson_batch_reply(), RuntimeError("provider down")])

        resp = await client.post(
            "/generate-lessons", json={"topics": ["Fractions", "Ratios"]}, headers=auth_headers
        )

        body = resp.json()
        assert resp.status_code == 200
        assert body["status"] == "ok"
        assert [l["order"] for l in body["results"]["Fractions"]] == [1, 2]
        assert body["results"]["Ratios"] == []

    @pytest.mark.parametrize(
        "payload",
        [{}, {"topics": "Fractions"}, {"topics": [""]}, {"topics": [42]}, {"topics": ["   "]}],
    )
    async def test_invalid_topic_list(self, client, auth_headers, fake_ai, payload):
        resp = await client.post("/generate-lessons", json=payload, headers=auth_headers)

        assert resp.status_code == 400
        assert resp.json()["error"] == "bad_request"
        assert fake_ai.calls == []
