"""Tests for the user document and history store."""

from datetime import datetime, timezone

import pytest

from app.core.db_services import (
    HistoryService,
    UserDataNotFound,
    UserDataService,
    apply_dot_path_updates,
    to_dot_paths,
)
from app.modules.library.models import Source, SourceType
from conftest import make_user


class TestDotPaths:
    def test_prefixes_keys(self):
        assert to_dot_paths("progress", {"points": 5, "quizzesTaken": 1}) == {
            "progress.points": 5,
            "progress.quizzesTaken": 1,
        }

    def test_updates_nested_field_only(self):
        doc = {"name": "Ada", "progress": {"points": 1, "pomodoroSessions": 3}}
        out = apply_dot_path_updates(doc, {"progress.points": 10})
        assert out["progress"] == {"points": 10, "pomodoroSessions": 3}
        assert out["name"] == "Ada"

    def test_does_not_mutate_input(self):
        doc = {"progress": {"points": 1}}
        apply_dot_path_updates(doc, {"progress.points": 2})
        assert doc == {"progress": {"points": 1}}

    def test_creates_missing_maps(self):
        out = apply_dot_path_updates({}, {"a.b.c": 1})
        assert out == {"a": {"b": {"c": 1}}}

    def test_rejects_empty_segment(self):
        with pytest.raises(ValueError):
            apply_dot_path_updates({}, {"progress..points": 1})


class TestUserDataService:
    async def test_create_and_get(self, db_session, user_id):
        data = await UserDataService(db_session).get_user_data(user_id)
        assert data is not None
        assert data.name == "Ada"
        assert data.email == "ada@example.com"
        assert data.progress.points == 0
        assert data.progress.quiz_scores == []
        assert data.sources == []

    async def test_missing_user_returns_none(self, db_session):
        assert await UserDataService(db_session).get_user_data(999) is None

    async def test_partial_progress_update(self, db_session, user_id):
        svc = UserDataService(db_session)
        await svc.update_user_progress(user_id, {"pomodoroSessions": 2})
        await svc.update_user_progress(user_id, {"points": 40})
        data = await svc.get_user_data(user_id)
        assert data.progress.points == 40
        assert data.progress.pomodoro_sessions == 2
        assert data.progress.quizzes_taken == 0

    async def test_quiz_score_dates_parse_back(self, db_session, user_id):
        svc = UserDataService(db_session)
        when = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
        await svc.update_user_progress(
            user_id,
            {"quizScores": [{"subject": "Graphs", "score": 80, "date": when.isoformat()}]},
        )
        data = await svc.get_user_data(user_id)
        assert data.progress.quiz_scores[0].date == when

    async def test_sources_overwritten_as_whole(self, db_session, user_id):
        svc = UserDataService(db_session)
        src = Source(
            id="source-1",
            name="notes.txt",
            type=SourceType.TEXT,
            content="hello",
            summary="greeting",
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        await svc.update_user_sources(user_id, [src])
        assert [s.id for s in (await svc.get_user_data(user_id)).sources] == ["source-1"]
        await svc.update_user_sources(user_id, [])
        assert (await svc.get_user_data(user_id)).sources == []

    async def test_unknown_field_rejected(self, db_session, user_id):
        with pytest.raises(ValueError):
            await UserDataService(db_session).update_fields(user_id, {"role": "admin"})

    async def test_update_missing_document(self, db_session):
        with pytest.raises(UserDataNotFound):
            await UserDataService(db_session).update_user_progress(42, {"points": 1})

    async def test_get_all_and_delete(self, db_session, user_id):
        other = await make_user(db_session, email="grace@example.com", name="Grace")
        svc = UserDataService(db_session)
        assert {u.id for u in await svc.get_all_users()} == {user_id, other}
        await svc.delete_user_data(other)
        assert await svc.get_user_data(other) is None
        assert [u.id for u in await svc.get_all_users()] == [user_id]


class TestHistoryService:
    async def test_get_missing_is_none(self, db_session, user_id):
        assert await HistoryService(db_session, user_id).get("quizHistory_x") is None

    async def test_set_append_remove(self, db_session, user_id):
        history = HistoryService(db_session, user_id)
        await history.set("quizHistory_x", ["q1"])
        assert await history.append("quizHistory_x", ["q2", "q3"]) == ["q1", "q2", "q3"]
        assert await history.get("quizHistory_x") == ["q1", "q2", "q3"]
        await history.remove("quizHistory_x")
        assert await history.get("quizHistory_x") is None

    async def test_keys_are_per_user(self, db_session, user_id):
        other = await make_user(db_session, email="grace@example.com", name="Grace")
        await HistoryService(db_session, user_id).set("k", [1])
        assert await HistoryService(db_session, other).get("k") is None
