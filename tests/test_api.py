"""End-to-end tests through the HTTP API."""

import asyncio
from uuid import uuid4

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from app.modules.ai.service import StudyAssistant, get_study_assistant
from app.apis.auth.main import ACCOUNT_DELETE_FAILED
from app.apis.deps import USER_DATA_MISSING
from app.core.db.base import async_session_maker
from app.core.db_services import UserDataService
from app.modules.auth.users import UserManager, get_user_db, get_user_manager
from conftest import quiz_payload, structured_model, text_model
from main import app


@pytest.fixture
def client():
    app.dependency_overrides[get_study_assistant] = lambda: StudyAssistant(
        text_model("Short summary")
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def register_and_login(client: TestClient, name: str = "Ada") -> dict:
    email = f"{uuid4().hex[:10]}@example.com"
    res = client.post(
        "/v1/auth/register",
        json={"email": email, "password": "s3cret-pass", "name": name},
    )
    assert res.status_code == 201, res.text
    res = client.post("/v1/auth/login", json={"email": email, "password": "s3cret-pass"})
    assert res.status_code == 200, res.text
    token = res.json()["idToken"]
    return {"Authorization": f"Bearer {token}"}


class TestAuth:
    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"

    def test_requires_token(self, client):
        assert client.get("/v1/auth/session").status_code == 401
        assert client.get("/v1/library/sources").status_code == 401

    def test_bad_credentials(self, client):
        res = client.post(
            "/v1/auth/login", json={"email": "nobody@example.com", "password": "x"}
        )
        assert res.status_code == 401

    def test_register_creates_user_document(self, client):
        headers = register_and_login(client, name="Grace")
        body = client.get("/v1/auth/session", headers=headers).json()
        assert body["user"]["name"] == "Grace"
        assert body["user"]["progress"]["points"] == 0
        assert body["user"]["sources"] == []
        assert body["currentView"] == "assistant"

    def test_jwks(self, client):
        keys = client.get("/.well-known/jwks.json").json()["keys"]
        assert keys and keys[0]["kid"] == "v1"

    def test_delete_account(self, client):
        headers = register_and_login(client)
        assert client.delete("/v1/auth/account", headers=headers).status_code == 204
        assert client.get("/v1/auth/session", headers=headers).status_code == 401


class TestLibraryAndNavigation:
    def test_pasted_text_flow(self, client):
        headers = register_and_login(client)
        res = client.post(
            "/v1/library/sources/text", json={"text": "Stacks are LIFO."}, headers=headers
        )
        assert res.status_code == 201, res.text
        source = res.json()
        assert source["summary"] == "Short summary"

        listed = client.get("/v1/library/sources", headers=headers).json()
        assert [s["id"] for s in listed] == [source["id"]]
        nav = client.get("/v1/navigation", headers=headers).json()
        assert nav["currentView"] == "library"

        client.get(f"/v1/library/sources/{source['id']}", headers=headers)
        nav = client.get("/v1/navigation", headers=headers).json()
        assert nav["activeSourceId"] == source["id"]

        res = client.delete(f"/v1/library/sources/{source['id']}", headers=headers)
        assert res.status_code == 204
        assert client.get("/v1/library/sources", headers=headers).json() == []

    def test_upload_rejects_images(self, client):
        headers = register_and_login(client)
        res = client.post(
            "/v1/library/sources/upload",
            files={"file": ("a.png", b"\x89PNG", "image/png")},
            headers=headers,
        )
        assert res.status_code == 400

    def test_upload_rejects_unreadable_pdf(self, client):
        headers = register_and_login(client)
        res = client.post(
            "/v1/library/sources/upload",
            files={"file": ("notes.pdf", b"this is not a pdf", "application/pdf")},
            headers=headers,
        )
        assert res.status_code == 400
        assert res.json()["detail"] == "Could not read the uploaded file."
        assert client.get("/v1/library/sources", headers=headers).json() == []

    def test_navigation_back(self, client):
        headers = register_and_login(client)
        client.post("/v1/navigation/view", json={"view": "dashboard"}, headers=headers)
        nav = client.post("/v1/navigation/back", headers=headers).json()
        assert nav["currentView"] == "assistant"
        assert nav["canGoBack"] is False

    def test_open_unknown_source(self, client):
        headers = register_and_login(client)
        res = client.post(
            "/v1/navigation/source", json={"source_id": "source-missing"}, headers=headers
        )
        assert res.status_code == 404


class TestProgress:
    def test_progress_and_dashboard(self, client):
        headers = register_and_login(client, name="Lin")
        progress = client.get("/v1/progress", headers=headers).json()
        assert progress["points"] == 0
        dashboard = client.get("/v1/dashboard", headers=headers).json()
        assert dashboard["name"] == "Lin"
        assert dashboard["recentSources"] == []

    def test_leaderboard_marks_me(self, client):
        headers = register_and_login(client)
        board = client.get("/v1/leaderboard", headers=headers).json()
        assert sum(1 for e in board if e["isCurrentUser"]) == 1


class FakeTranscriber:
    def __init__(self, on_update):
        self.on_update = on_update
        self.stopped = False

    async def start(self):
        pass

    async def send_audio(self, frame: bytes):
        await self.on_update(f"heard {len(frame)} bytes")

    async def stop(self):
        self.stopped = True


class TestStudyEndpoints:
    def test_source_chat(self, client):
        headers = register_and_login(client)
        source = client.post(
            "/v1/library/sources/text", json={"text": "Heaps."}, headers=headers
        ).json()
        url = f"/v1/sources/{source['id']}/chat"
        greeting = client.get(url, headers=headers).json()["messages"]
        assert len(greeting) == 1 and greeting[0]["sender"] == "ai"

        messages = client.post(url, json={"message": "What is a heap?"}, headers=headers).json()["messages"]
        assert [m["sender"] for m in messages] == ["ai", "user", "ai"]
        assert len(client.get(url, headers=headers).json()["messages"]) == 3
        assert len(client.delete(url, headers=headers).json()["messages"]) == 1

    def test_chat_unknown_source(self, client):
        headers = register_and_login(client)
        res = client.get("/v1/sources/source-missing/chat", headers=headers)
        assert res.status_code == 404

    def test_subject_quiz_needs_topic(self, client):
        headers = register_and_login(client)
        res = client.post(
            "/v1/assistant/quiz",
            json={"subject": "Other", "topic": " ", "num_questions": 5},
            headers=headers,
        )
        assert res.status_code == 422

    def test_analyze_assignment(self, client):
        headers = register_and_login(client)
        res = client.post(
            "/v1/assistant/analyze",
            data={"subject": "Other"},
            files={"file": ("essay.txt", b"My essay", "text/plain")},
            headers=headers,
        )
        assert res.status_code == 200, res.text
        assert res.json()["feedback"] == "Short summary"

    def test_analyze_without_file(self, client):
        headers = register_and_login(client)
        res = client.post("/v1/assistant/analyze", data={"subject": "Other"}, headers=headers)
        assert res.status_code == 400


class TestRealtime:
    def test_transcribe_requires_token(self, client):
        from starlette.websockets import WebSocketDisconnect

        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/v1/assistant/transcribe"):
                pass
        assert exc.value.code == 4401

    def test_transcribe_relays_text(self, client):
        from app.apis.assistant.main import get_transcriber_factory

        headers = register_and_login(client)
        token = headers["Authorization"].split(" ", 1)[1]
        app.dependency_overrides[get_transcriber_factory] = lambda: FakeTranscriber
        with client.websocket_connect(f"/v1/assistant/transcribe?access_token={token}") as ws:
            assert ws.receive_json() == {"type": "started"}
            ws.send_bytes(b"\x00" * 8)
            assert ws.receive_json() == {"type": "transcription", "text": "heard 8 bytes"}
            ws.send_text("stop")
            assert ws.receive_json() == {"type": "stopped"}

    def test_pomodoro_toggle(self, client):
        headers = register_and_login(client)
        state = client.get("/v1/pomodoro", headers=headers).json()
        assert state["is_active"] is False
        assert client.post("/v1/pomodoro/toggle", headers=headers).json()["is_active"] is True
        assert client.post("/v1/pomodoro/reset", headers=headers).json()["is_active"] is False


async def drop_user_document(user_id: int) -> None:
    async with async_session_maker() as session:
        await UserDataService(session).delete_user_data(user_id)


class FailingDeleteManager(UserManager):
    async def delete(self, user, request=None):
        raise RuntimeError("auth store unavailable")


async def failing_user_manager(user_db=Depends(get_user_db)):
    yield FailingDeleteManager(user_db)


class TestInconsistentAccounts:
    def test_missing_document_signs_out(self, client):
        headers = register_and_login(client)
        user_id = client.get("/v1/users/me", headers=headers).json()["id"]
        client.post("/v1/navigation/view", json={"view": "dashboard"}, headers=headers)

        asyncio.run(drop_user_document(user_id))
        res = client.get("/v1/auth/session", headers=headers)
        assert res.status_code == 401
        assert res.json()["detail"] == USER_DATA_MISSING
        nav = client.get("/v1/navigation", headers=headers).json()
        assert nav["currentView"] == "assistant"
        assert nav["history"] == []

    def test_failed_account_delete(self, client):
        headers = register_and_login(client)
        app.dependency_overrides[get_user_manager] = failing_user_manager
        res = client.delete("/v1/auth/account", headers=headers)
        assert res.status_code == 500
        assert res.json()["detail"] == ACCOUNT_DELETE_FAILED

    def test_answer_without_document_keeps_quiz(self, client):
        app.dependency_overrides[get_study_assistant] = lambda: StudyAssistant(
            structured_model(quiz_payload("Q1", "Q2", "Q3"))
        )
        headers = register_and_login(client)
        user_id = client.get("/v1/users/me", headers=headers).json()["id"]
        source = client.post(
            "/v1/library/sources/text", json={"text": "Tries."}, headers=headers
        ).json()
        quiz = client.post(
            f"/v1/sources/{source['id']}/quiz", json={"num_questions": 3}, headers=headers
        ).json()
        for _ in range(2):
            client.post(f"/v1/quizzes/{quiz['id']}/answer", json={"option": "A"}, headers=headers)

        asyncio.run(drop_user_document(user_id))
        res = client.post(
            f"/v1/quizzes/{quiz['id']}/answer", json={"option": "A"}, headers=headers
        )
        assert res.status_code == 401
        assert res.json()["detail"] == USER_DATA_MISSING
        state = client.get(f"/v1/quizzes/{quiz['id']}", headers=headers).json()
        assert state["currentIndex"] == 2
        assert state["finished"] is False
