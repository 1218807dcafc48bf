"""History-aware quiz and flashcard workflows.

Generated questions and terms are remembered per source so later runs can
ask the model to avoid them.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db_services import HistoryService
from app.core.logging import get_logger
from app.modules.ai.models import Difficulty, Flashcard, Subject
from app.modules.ai.service import StudyAssistant
from app.modules.library.models import Source
from app.modules.progress.service import ProgressService
from app.modules.study.quiz import (
    ActiveQuiz,
    QuizKind,
    QuizResult,
    QuizSessionManager,
    quiz_sessions,
)


logger = get_logger(__name__)

QUIZ_EXHAUSTED = (
    "Could not generate a new quiz from this source. "
    "You may have exhausted all the unique questions."
)
FLASHCARDS_EXHAUSTED = (
    "Could not generate new flashcards from this source. "
    "You may have exhausted all the unique terms."
)
TOPICS_REQUIRED = "Please specify the topics to cover."
SUBJECT_QUIZ_FAILED = "Could not generate a quiz. Please try refining your topics."
SUBJECT_FLASHCARDS_FAILED = "Could not generate flashcards. Please try refining your topics."


class StudyError(ValueError):
    """User-facing failure of a study workflow."""


class QuizNotFound(LookupError):
    pass


def quiz_history_key(source_id: str) -> str:
    return f"quizHistory_{source_id}"


def flashcard_history_key(source_id: str) -> str:
    return f"flashcardHistory_{source_id}"


def check_count(value: int, low: int, high: int, what: str) -> None:
    if not low <= value <= high:
        raise StudyError(f"Number of {what} must be between {low} and {high}.")


def subject_quiz_context(subject: Subject, topic: str) -> str:
    return f'This quiz was about the subject "{subject.value}" covering topics: {topic}.'


class StudyService:
    def __init__(
        self,
        session: AsyncSession,
        user_id: int,
        assistant: StudyAssistant,
        quizzes: Optional[QuizSessionManager] = None,
    ):
        self.user_id = user_id
        self.assistant = assistant
        self.history = HistoryService(session, user_id)
        self.progress = ProgressService(session)
        self.quizzes = quizzes or quiz_sessions

    # Source quizzes and flashcards ---------------------------------------
    async def start_source_quiz(self, source: Source, num_questions: int) -> ActiveQuiz:
        check_count(
            num_questions,
            settings.study.source_quiz_min,
            settings.study.source_quiz_max,
            "questions",
        )
        key = quiz_history_key(source.id)
        previous = await self.history.get(key) or []
        questions = await self.assistant.generate_quiz(
            source.content, source.name, num_questions, previous
        )
        if not questions:
            raise StudyError(QUIZ_EXHAUSTED)
        await self.history.append(key, [q.question for q in questions])
        return self.quizzes.start(
            user_id=self.user_id,
            kind=QuizKind.SOURCE,
            subject=source.name,
            analysis_context=source.content,
            questions=questions,
            source_id=source.id,
        )

    async def generate_source_flashcards(
        self, source: Source, num_cards: int
    ) -> list[Flashcard]:
        check_count(
            num_cards,
            settings.study.source_flashcards_min,
            settings.study.source_flashcards_max,
            "flashcards",
        )
        key = flashcard_history_key(source.id)
        previous = await self.history.get(key) or []
        cards = await self.assistant.generate_flashcards(
            source.content, source.name, num_cards, previous
        )
        if not cards:
            raise StudyError(FLASHCARDS_EXHAUSTED)
        await self.progress.add_points(
            self.user_id, len(cards) * settings.study.flashcard_points
        )
        await self.history.append(key, [c.term for c in cards])
        return cards

    # Subject quizzes and flashcards --------------------------------------
    @staticmethod
    def _required_topic(topic: str) -> str:
        topic = (topic or "").strip()
        if not topic:
            raise StudyError(TOPICS_REQUIRED)
        return topic

    async def start_subject_quiz(
        self, subject: Subject, topic: str, difficulty: Difficulty, num_questions: int
    ) -> ActiveQuiz:
        topic = self._required_topic(topic)
        check_count(
            num_questions,
            settings.study.subject_quiz_min,
            settings.study.subject_quiz_max,
            "questions",
        )
        questions = await self.assistant.generate_subject_quiz(
            subject, topic, difficulty.value, num_questions
        )
        if not questions:
            raise StudyError(SUBJECT_QUIZ_FAILED)
        return self.quizzes.start(
            user_id=self.user_id,
            kind=QuizKind.SUBJECT,
            subject=subject.value,
            analysis_context=subject_quiz_context(subject, topic),
            questions=questions,
        )

    async def generate_subject_flashcards(
        self, subject: Subject, topic: str, difficulty: Difficulty, num_cards: int
    ) -> list[Flashcard]:
        topic = self._required_topic(topic)
        check_count(
            num_cards,
            settings.study.subject_flashcards_min,
            settings.study.subject_flashcards_max,
            "flashcards",
        )
        cards = await self.assistant.generate_subject_flashcards(
            subject, topic, difficulty.value, num_cards
        )
        if not cards:
            raise StudyError(SUBJECT_FLASHCARDS_FAILED)
        return cards

    # Active quiz ---------------------------------------------------------
    def get_quiz(self, quiz_id: str) -> ActiveQuiz:
        quiz = self.quizzes.get(quiz_id, self.user_id)
        if quiz is None:
            raise QuizNotFound(quiz_id)
        return quiz

    async def answer(self, quiz_id: str, option: str) -> tuple[ActiveQuiz, Optional[QuizResult]]:
        """Record one answer; the last answer finishes the quiz and returns its result."""
        quiz = self.get_quiz(quiz_id)
        try:
            quiz.answer(option)
        except ValueError as e:
            raise StudyError(str(e)) from e
        if not quiz.finished:
            return quiz, None

        results = quiz.results()
        incorrect = [r for r in results if not r.is_correct]
        score = quiz.score()
        if quiz.kind == QuizKind.SOURCE:
            try:
                await self.progress.complete_quiz(self.user_id, quiz.subject, score)
            except Exception:
                # Keep the session so the last answer can be resubmitted
                quiz.retract_last()
                raise
        self.quizzes.discard(quiz.id)
        feedback = await self.assistant.analyze_quiz_results(
            incorrect, quiz.analysis_context
        )
        logger.info(
            "Finished %s quiz with score %d", quiz.kind.value, score,
            extra={"user_id": self.user_id},
        )
        return quiz, QuizResult(
            score=score,
            correct_count=len(results) - len(incorrect),
            total_questions=len(results),
            results=results,
            incorrect=incorrect,
            feedback=feedback,
        )
