"""Tests for chat transcripts and the history-aware quiz/flashcard workflows."""

from datetime import datetime, timezone

import pytest

from app.core.db_services import HistoryService, UserDataNotFound, UserDataService
from app.modules.ai.models import Difficulty, Subject
from app.modules.ai.service import PERFECT_SCORE, StudyAssistant
from app.modules.library.models import Source, SourceType
from app.modules.progress.service import ProgressService
from app.modules.study.chat import ChatService, source_chat_key, subject_chat_key
from app.modules.study.quiz import QuizKind, QuizSessionManager
from app.modules.study.service import (
    QUIZ_EXHAUSTED,
    TOPICS_REQUIRED,
    QuizNotFound,
    StudyError,
    StudyService,
    flashcard_history_key,
    quiz_history_key,
)
from conftest import deck_payload, quiz_payload, structured_model, text_model


SOURCE = Source(
    id="source-abc",
    name="Graphs.pdf",
    type=SourceType.PDF,
    content="Graphs have vertices and edges.",
    summary="About graphs",
    created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
)


class TestChatService:
    async def test_greeting_when_no_history(self, db_session, user_id):
        chat = ChatService(HistoryService(db_session, user_id), StudyAssistant(text_model()))
        (greeting,) = await chat.load_source_chat(SOURCE)
        assert greeting.sender == "ai"
        assert '"Graphs.pdf"' in greeting.text
        assert await HistoryService(db_session, user_id).get(source_chat_key(SOURCE.id)) is None

    async def test_send_persists_conversation(self, db_session, user_id):
        history = HistoryService(db_session, user_id)
        chat = ChatService(history, StudyAssistant(text_model("Edges connect vertices.")))
        messages = await chat.send_source_message(SOURCE, "What is an edge?")
        assert [m.sender for m in messages] == ["ai", "user", "ai"]
        assert messages[-1].text == "Edges connect vertices."
        reloaded = await chat.load_source_chat(SOURCE)
        assert [m.text for m in reloaded] == [m.text for m in messages]

    async def test_clear_removes_history(self, db_session, user_id):
        history = HistoryService(db_session, user_id)
        chat = ChatService(history, StudyAssistant(text_model()))
        await chat.send_source_message(SOURCE, "hi")
        messages = await chat.clear_source_chat(SOURCE)
        assert len(messages) == 1
        assert await history.get(source_chat_key(SOURCE.id)) is None

    async def test_subject_greetings(self, db_session, user_id):
        chat = ChatService(HistoryService(db_session, user_id), StudyAssistant(text_model()))
        (other,) = await chat.load_subject_chat(Subject.OTHER)
        assert other.text == "Great! What problem can I help you with?"
        (dsa,) = await chat.load_subject_chat(Subject.DATA_STRUCTURES)
        assert "Data Structures and Applications" in dsa.text

    async def test_subject_history_key(self, db_session, user_id):
        history = HistoryService(db_session, user_id)
        chat = ChatService(history, StudyAssistant(text_model("sure")))
        await chat.send_subject_message(Subject.DISCRETE_MATH, "What is a relation?")
        saved = await history.get(subject_chat_key(Subject.DISCRETE_MATH))
        assert saved is not None and len(saved) == 3
        assert subject_chat_key(Subject.DISCRETE_MATH) == (
            "assistantChatHistory_Discrete Mathematical Structures"
        )


def study(db_session, user_id, model) -> StudyService:
    return StudyService(db_session, user_id, StudyAssistant(model), quizzes=QuizSessionManager())


class TestSourceQuiz:
    async def test_generation_appends_history(self, db_session, user_id):
        calls: list = []
        service = study(db_session, user_id, structured_model(quiz_payload("Q1", "Q2", "Q3"), calls))
        quiz = await service.start_source_quiz(SOURCE, 3)
        assert quiz.kind == QuizKind.SOURCE
        assert await service.history.get(quiz_history_key(SOURCE.id)) == ["Q1", "Q2", "Q3"]

        await service.start_source_quiz(SOURCE, 3)
        assert await service.history.get(quiz_history_key(SOURCE.id)) == [
            "Q1", "Q2", "Q3", "Q1", "Q2", "Q3",
        ]

    async def test_empty_result_is_exhausted(self, db_session, user_id):
        service = study(db_session, user_id, structured_model({"questions": []}))
        with pytest.raises(StudyError, match="exhausted all the unique questions"):
            await service.start_source_quiz(SOURCE, 3)
        assert await service.history.get(quiz_history_key(SOURCE.id)) is None
        assert QUIZ_EXHAUSTED.startswith("Could not generate a new quiz")

    async def test_count_range(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(quiz_payload("Q1")))
        with pytest.raises(StudyError):
            await service.start_source_quiz(SOURCE, 2)
        with pytest.raises(StudyError):
            await service.start_source_quiz(SOURCE, 11)

    async def test_answering_records_progress(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(quiz_payload("Q1", "Q2", "Q3")))
        quiz = await service.start_source_quiz(SOURCE, 3)
        service.assistant = StudyAssistant(text_model("Review edges."))

        _, result = await service.answer(quiz.id, "A")
        assert result is None
        await service.answer(quiz.id, "B")
        state, result = await service.answer(quiz.id, "A")

        assert state.finished
        assert result.score == 67
        assert result.correct_count == 2
        assert len(result.incorrect) == 1
        assert result.feedback == "Review edges."
        progress = await ProgressService(db_session).get_progress(user_id)
        assert progress.points == 67
        assert progress.quizzes_taken == 1
        assert progress.quiz_scores[0].subject == "Graphs.pdf"
        with pytest.raises(QuizNotFound):
            service.get_quiz(quiz.id)

    async def test_failed_progress_write_keeps_quiz(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(quiz_payload("Q1", "Q2", "Q3")))
        quiz = await service.start_source_quiz(SOURCE, 3)
        service.assistant = StudyAssistant(text_model("Review edges."))
        await service.answer(quiz.id, "A")
        await service.answer(quiz.id, "A")

        users = UserDataService(db_session)
        await users.delete_user_data(user_id)
        with pytest.raises(UserDataNotFound):
            await service.answer(quiz.id, "A")

        kept = service.get_quiz(quiz.id)
        assert kept.current_index == 2
        assert not kept.finished

        await users.create_user_data(user_id, "Ada", "ada@example.com")
        _, result = await service.answer(quiz.id, "A")
        assert result.score == 100
        assert (await ProgressService(db_session).get_progress(user_id)).quizzes_taken == 1
        with pytest.raises(QuizNotFound):
            service.get_quiz(quiz.id)

    async def test_invalid_option(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(quiz_payload("Q1", "Q2", "Q3")))
        quiz = await service.start_source_quiz(SOURCE, 3)
        with pytest.raises(StudyError):
            await service.answer(quiz.id, "Z")

    async def test_quiz_is_private(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(quiz_payload("Q1", "Q2", "Q3")))
        quiz = await service.start_source_quiz(SOURCE, 3)
        intruder = StudyService(db_session, user_id + 1, service.assistant, quizzes=service.quizzes)
        with pytest.raises(QuizNotFound):
            intruder.get_quiz(quiz.id)


class TestFlashcards:
    async def test_source_flashcards_award_points(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(deck_payload("Vertex", "Edge", "Path")))
        cards = await service.generate_source_flashcards(SOURCE, 3)
        assert len(cards) == 3
        assert (await ProgressService(db_session).get_progress(user_id)).points == 6
        assert await service.history.get(flashcard_history_key(SOURCE.id)) == [
            "Vertex", "Edge", "Path",
        ]

    async def test_subject_requires_topic(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(deck_payload("x")))
        with pytest.raises(StudyError, match=TOPICS_REQUIRED):
            await service.generate_subject_flashcards(Subject.OTHER, "  ", Difficulty.EASY, 5)

    async def test_subject_count_range(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(deck_payload("x")))
        with pytest.raises(StudyError):
            await service.generate_subject_flashcards(Subject.OTHER, "sets", Difficulty.EASY, 4)

    async def test_subject_flashcards_allow_up_to_25(self, db_session, user_id):
        terms = [f"T{i}" for i in range(25)]
        service = study(db_session, user_id, structured_model(deck_payload(*terms)))
        cards = await service.generate_subject_flashcards(
            Subject.OTHER, "sets", Difficulty.EASY, 25
        )
        assert len(cards) == 25
        with pytest.raises(StudyError, match="between 5 and 25"):
            await service.generate_subject_flashcards(Subject.OTHER, "sets", Difficulty.EASY, 26)

    async def test_subject_quiz_stays_capped_at_20(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(quiz_payload("Q1")))
        with pytest.raises(StudyError, match="between 5 and 20"):
            await service.start_subject_quiz(Subject.OTHER, "sets", Difficulty.EASY, 21)


class TestSubjectQuiz:
    async def test_perfect_subject_quiz_skips_progress(self, db_session, user_id):
        service = study(db_session, user_id, structured_model(quiz_payload(*[f"Q{i}" for i in range(5)])))
        quiz = await service.start_subject_quiz(
            Subject.DISCRETE_MATH, "sets, relations", Difficulty.HARD, 5
        )
        assert quiz.kind == QuizKind.SUBJECT
        assert "sets, relations" in quiz.analysis_context
        result = None
        for _ in range(5):
            _, result = await service.answer(quiz.id, "A")
        assert result.score == 100
        assert result.feedback == PERFECT_SCORE
        assert (await ProgressService(db_session).get_progress(user_id)).quizzes_taken == 0
