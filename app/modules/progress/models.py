"""Pydantic models for the user document and gamified progress."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.modules.library.models import Source


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuizScore(_CamelModel):
    subject: str
    score: int
    date: datetime


class UserProgress(_CamelModel):
    points: int = 0
    pomodoro_sessions: int = 0
    quizzes_taken: int = 0
    quiz_scores: list[QuizScore] = Field(default_factory=list)


class UserData(_CamelModel):
    """The whole per-user document."""

    id: int
    name: str
    email: str = ""
    progress: UserProgress = Field(default_factory=UserProgress)
    sources: list[Source] = Field(default_factory=list)


class LeaderboardEntry(_CamelModel):
    rank: int
    medal: Optional[str] = None
    user_id: int
    name: str
    initial: str
    points: int
    quizzes_taken: int
    is_current_user: bool = False


class QuizScorePoint(_CamelModel):
    subject: str
    score: int
    date: str


class StreakSummary(_CamelModel):
    current_streak: int = 0
    longest_streak: int = 0
    last_study_date: Optional[str] = None


class AnalyticsSummary(_CamelModel):
    points: int
    pomodoro_sessions: int
    quizzes_taken: int
    average_score: Optional[float] = None
    streak: StreakSummary
    quiz_scores: list[QuizScorePoint] = Field(default_factory=list)
