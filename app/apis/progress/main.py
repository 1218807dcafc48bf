from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.apis.deps import CurrentUserData, Session
from app.core.config import settings
from app.modules.library.models import Source
from app.modules.library.service import RECENT_LIMIT
from app.modules.progress.models import (
    AnalyticsSummary,
    LeaderboardEntry,
    UserProgress,
)
from app.modules.progress.service import ProgressService, build_analytics


router = APIRouter()

PREFIX = f"/{settings.app.version}"


class DashboardResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    progress: UserProgress
    recent_sources: list[Source]


@router.get(f"{PREFIX}/progress", response_model=UserProgress, tags=["progress"])
async def get_progress(data: CurrentUserData) -> UserProgress:
    return data.progress


@router.get(f"{PREFIX}/analytics", response_model=AnalyticsSummary, tags=["progress"])
async def get_analytics(data: CurrentUserData) -> AnalyticsSummary:
    return build_analytics(data.progress)


@router.get(
    f"{PREFIX}/leaderboard", response_model=list[LeaderboardEntry], tags=["progress"]
)
async def get_leaderboard(data: CurrentUserData, session: Session) -> list[LeaderboardEntry]:
    return await ProgressService(session).leaderboard(current_user_id=data.id)


@router.get(f"{PREFIX}/dashboard", response_model=DashboardResponse, tags=["progress"])
async def get_dashboard(data: CurrentUserData) -> DashboardResponse:
    recent = sorted(data.sources, key=lambda s: s.created_at, reverse=True)[:RECENT_LIMIT]
    return DashboardResponse(name=data.name, progress=data.progress, recent_sources=recent)
