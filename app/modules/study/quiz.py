"""In-memory quiz sessions answered one question at a time.

Sessions live in-process only and are dropped once finished or idle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.modules.ai.models import QuizQuestion, UserAnswer
from app.modules.progress.service import quiz_score


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class QuizKind(str, Enum):
    SOURCE = "source"
    SUBJECT = "subject"


class QuestionView(BaseModel):
    """A question as shown while the quiz is running; the answer stays hidden."""

    index: int
    question: str
    options: list[str]


class QuizState(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    kind: QuizKind
    subject: str
    current_index: int
    total_questions: int
    finished: bool
    question: Optional[QuestionView] = None


class QuizResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    score: int
    correct_count: int
    total_questions: int
    results: list[UserAnswer]
    incorrect: list[UserAnswer]
    feedback: str


@dataclass
class ActiveQuiz:
    id: str
    user_id: int
    kind: QuizKind
    subject: str
    analysis_context: str
    questions: list[QuizQuestion]
    source_id: Optional[str] = None
    answers: list[str] = field(default_factory=list)
    last_activity: datetime = field(default_factory=_now_utc)

    @property
    def current_index(self) -> int:
        return len(self.answers)

    @property
    def finished(self) -> bool:
        return len(self.answers) >= len(self.questions)

    def answer(self, option: str) -> None:
        if self.finished:
            raise ValueError("Quiz is already finished")
        question = self.questions[self.current_index]
        if option not in question.options:
            raise ValueError("Selected option is not one of the choices")
        self.answers.append(option)
        self.last_activity = _now_utc()

    def retract_last(self) -> None:
        if self.answers:
            self.answers.pop()

    def results(self) -> list[UserAnswer]:
        return [
            UserAnswer(
                question=q.question,
                options=q.options,
                correct_answer=q.correct_answer,
                user_answer=a,
                is_correct=a == q.correct_answer,
            )
            for q, a in zip(self.questions, self.answers)
        ]

    def score(self) -> int:
        results = self.results()
        return quiz_score(sum(1 for r in results if r.is_correct), len(results))

    def to_state(self) -> QuizState:
        current = None
        if not self.finished:
            q = self.questions[self.current_index]
            current = QuestionView(index=self.current_index, question=q.question, options=q.options)
        return QuizState(
            id=self.id,
            kind=self.kind,
            subject=self.subject,
            current_index=self.current_index,
            total_questions=len(self.questions),
            finished=self.finished,
            question=current,
        )


class QuizSessionManager:
    def __init__(self, idle_seconds: int = 3600) -> None:
        self.quizzes: dict[str, ActiveQuiz] = {}
        self._idle = timedelta(seconds=idle_seconds)

    def start(
        self,
        *,
        user_id: int,
        kind: QuizKind,
        subject: str,
        analysis_context: str,
        questions: list[QuizQuestion],
        source_id: Optional[str] = None,
    ) -> ActiveQuiz:
        if not questions:
            raise ValueError("A quiz needs at least one question")
        self.sweep()
        quiz = ActiveQuiz(
            id=uuid4().hex[:12],
            user_id=user_id,
            kind=kind,
            subject=subject,
            analysis_context=analysis_context,
            questions=list(questions),
            source_id=source_id,
        )
        self.quizzes[quiz.id] = quiz
        return quiz

    def get(self, quiz_id: str, user_id: int) -> Optional[ActiveQuiz]:
        quiz = self.quizzes.get(quiz_id)
        if quiz is None or quiz.user_id != user_id:
            return None
        return quiz

    def discard(self, quiz_id: str) -> None:
        self.quizzes.pop(quiz_id, None)

    def discard_user(self, user_id: int) -> None:
        for quiz_id in [q.id for q in self.quizzes.values() if q.user_id == user_id]:
            self.quizzes.pop(quiz_id, None)

    def sweep(self) -> None:
        cutoff = _now_utc() - self._idle
        for quiz_id in [q.id for q in self.quizzes.values() if q.last_activity < cutoff]:
            self.quizzes.pop(quiz_id, None)


quiz_sessions = QuizSessionManager()
