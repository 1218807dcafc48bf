"""Points, streaks and the leaderboard.

All writes go through dot-path partial updates on ``progress`` so fields
that are not named keep their stored value.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db_services import UserDataNotFound, UserDataService
from app.core.logging import get_logger
from app.modules.progress.models import (
    AnalyticsSummary,
    LeaderboardEntry,
    QuizScore,
    QuizScorePoint,
    StreakSummary,
    UserData,
    UserProgress,
)


logger = get_logger(__name__)

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


def quiz_score(correct: int, total: int) -> int:
    """Percentage rounded half up."""
    if total <= 0:
        return 0
    return int(correct * 100 / total + 0.5)


def short_date(value: datetime) -> str:
    return f"{value:%b} {value.day}"


def compute_streak(dates: Iterable[datetime], today: Optional[date] = None) -> StreakSummary:
    """Daily streaks over the distinct days on which a quiz was taken.

    The current streak still counts when the last study day was yesterday.
    """
    days = sorted({d.date() for d in dates})
    if not days:
        return StreakSummary()
    today = today or datetime.now(timezone.utc).date()

    longest = run = 1
    for prev, cur in zip(days, days[1:]):
        run = run + 1 if cur - prev == timedelta(days=1) else 1
        longest = max(longest, run)

    current = 0
    if today - days[-1] <= timedelta(days=1):
        current = 1
        for prev, cur in zip(reversed(days[:-1]), reversed(days[1:])):
            if cur - prev != timedelta(days=1):
                break
            current += 1

    return StreakSummary(
        current_streak=current,
        longest_streak=longest,
        last_study_date=days[-1].isoformat(),
    )


def build_leaderboard(
    users: Sequence[UserData], current_user_id: Optional[int] = None
) -> list[LeaderboardEntry]:
    ranked = sorted(users, key=lambda u: u.progress.points, reverse=True)
    return [
        LeaderboardEntry(
            rank=i,
            medal=MEDALS.get(i),
            user_id=u.id,
            name=u.name,
            initial=(u.name[:1] or "?").upper(),
            points=u.progress.points,
            quizzes_taken=u.progress.quizzes_taken,
            is_current_user=u.id == current_user_id,
        )
        for i, u in enumerate(ranked, start=1)
    ]


def build_analytics(progress: UserProgress, today: Optional[date] = None) -> AnalyticsSummary:
    scores = progress.quiz_scores
    average = round(sum(s.score for s in scores) / len(scores), 1) if scores else None
    return AnalyticsSummary(
        points=progress.points,
        pomodoro_sessions=progress.pomodoro_sessions,
        quizzes_taken=progress.quizzes_taken,
        average_score=average,
        streak=compute_streak((s.date for s in scores), today),
        quiz_scores=[
            QuizScorePoint(subject=s.subject, score=s.score, date=short_date(s.date))
            for s in scores
        ],
    )


class ProgressService:
    def __init__(self, session: AsyncSession):
        self.users = UserDataService(session)

    async def get_progress(self, user_id: int) -> UserProgress:
        data = await self.users.get_user_data(user_id)
        if data is None:
            raise UserDataNotFound(f"No user document for user {user_id}")
        return data.progress

    async def add_points(self, user_id: int, amount: int) -> UserProgress:
        progress = await self.get_progress(user_id)
        points = progress.points + amount
        await self.users.update_user_progress(user_id, {"points": points})
        logger.info("Awarded %d points", amount, extra={"user_id": user_id})
        return progress.model_copy(update={"points": points})

    async def complete_pomodoro_session(self, user_id: int) -> UserProgress:
        progress = await self.get_progress(user_id)
        update = {
            "points": progress.points + settings.study.pomodoro_points,
            "pomodoro_sessions": progress.pomodoro_sessions + 1,
        }
        await self.users.update_user_progress(
            user_id,
            {"points": update["points"], "pomodoroSessions": update["pomodoro_sessions"]},
        )
        return progress.model_copy(update=update)

    async def complete_quiz(
        self,
        user_id: int,
        subject: str,
        score: int,
        when: Optional[datetime] = None,
    ) -> UserProgress:
        progress = await self.get_progress(user_id)
        entry = QuizScore(
            subject=subject, score=score, date=when or datetime.now(timezone.utc)
        )
        scores = [*progress.quiz_scores, entry]
        update = {
            "points": progress.points + score,
            "quizzes_taken": progress.quizzes_taken + 1,
            "quiz_scores": scores,
        }
        await self.users.update_user_progress(
            user_id,
            {
                "points": update["points"],
                "quizzesTaken": update["quizzes_taken"],
                "quizScores": [s.model_dump(mode="json", by_alias=True) for s in scores],
            },
        )
        logger.info("Recorded quiz score %d for %s", score, subject, extra={"user_id": user_id})
        return progress.model_copy(update=update)

    async def leaderboard(self, current_user_id: Optional[int] = None) -> list[LeaderboardEntry]:
        return build_leaderboard(await self.users.get_all_users(), current_user_id)

    async def analytics(self, user_id: int) -> AnalyticsSummary:
        return build_analytics(await self.get_progress(user_id))
