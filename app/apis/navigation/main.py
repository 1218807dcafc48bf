from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.apis.deps import CurrentUser, CurrentUserData
from app.core.config import settings
from app.modules.navigation.state import NavigationState, View, navigation_manager


router = APIRouter()

PREFIX = f"/{settings.app.version}/navigation"


class NavigationRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_view: View
    history: list[View]
    can_go_back: bool
    active_source_id: Optional[str] = None


class SetViewRequest(BaseModel):
    view: View


class OpenSourceRequest(BaseModel):
    source_id: str


def _read(state: NavigationState) -> NavigationRead:
    return NavigationRead(
        current_view=state.current_view,
        history=list(state.history),
        can_go_back=state.can_go_back,
        active_source_id=state.active_source_id,
    )


@router.get(PREFIX, response_model=NavigationRead, tags=["navigation"])
async def get_navigation(user: CurrentUser) -> NavigationRead:
    return _read(navigation_manager.get(user.id))


@router.post(f"{PREFIX}/view", response_model=NavigationRead, tags=["navigation"])
async def set_view(req: SetViewRequest, user: CurrentUser) -> NavigationRead:
    state = navigation_manager.get(user.id)
    state.set_view(req.view)
    return _read(state)


@router.post(f"{PREFIX}/back", response_model=NavigationRead, tags=["navigation"])
async def go_back(user: CurrentUser) -> NavigationRead:
    state = navigation_manager.get(user.id)
    state.back()
    return _read(state)


@router.post(f"{PREFIX}/source", response_model=NavigationRead, tags=["navigation"])
async def open_source(req: OpenSourceRequest, data: CurrentUserData) -> NavigationRead:
    if not any(s.id == req.source_id for s in data.sources):
        raise HTTPException(status_code=404, detail="Source not found")
    state = navigation_manager.get(data.id)
    state.open_source(req.source_id)
    return _read(state)


@router.delete(f"{PREFIX}/source", response_model=NavigationRead, tags=["navigation"])
async def close_source(user: CurrentUser) -> NavigationRead:
    state = navigation_manager.get(user.id)
    state.close_source()
    return _read(state)
