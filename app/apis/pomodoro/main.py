from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from app.apis.deps import CurrentUser, current_user_or_query_token
from app.core.config import settings
from app.core.db.schemas.auth import User
from app.modules.pomodoro.timer import (
    NotificationPermission,
    PomodoroState,
    pomodoro_manager,
)


router = APIRouter()

PREFIX = f"/{settings.app.version}/pomodoro"

HEARTBEAT_SECONDS = 15


class PermissionRequest(BaseModel):
    permission: NotificationPermission


def _sse(event: str | None, data: dict) -> bytes:
    payload = json.dumps(data, ensure_ascii=False)
    parts = []
    if event:
        parts.append(f"event: {event}")
    parts.append(f"data: {payload}")
    parts.append("")
    return ("\n".join(parts) + "\n").encode("utf-8")


@router.get(PREFIX, response_model=PomodoroState, tags=["pomodoro"])
async def get_timer(user: CurrentUser) -> PomodoroState:
    return pomodoro_manager.state(user.id)


@router.post(f"{PREFIX}/toggle", response_model=PomodoroState, tags=["pomodoro"])
async def toggle_timer(user: CurrentUser) -> PomodoroState:
    return pomodoro_manager.toggle(user.id)


@router.post(f"{PREFIX}/reset", response_model=PomodoroState, tags=["pomodoro"])
async def reset_timer(user: CurrentUser) -> PomodoroState:
    return pomodoro_manager.reset(user.id)


@router.put(f"{PREFIX}/permission", response_model=PomodoroState, tags=["pomodoro"])
async def set_permission(req: PermissionRequest, user: CurrentUser) -> PomodoroState:
    return pomodoro_manager.set_permission(user.id, req.permission)


@router.get(f"{PREFIX}/events", tags=["pomodoro"])
async def stream_timer_events(
    user: User = Depends(current_user_or_query_token),
) -> StreamingResponse:
    user_id = user.id
    queue = pomodoro_manager.subscribe(user_id)

    async def gen():
        try:
            yield _sse("state", pomodoro_manager.state(user_id).model_dump(mode="json"))
            while True:
                try:
                    msg = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    ts = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
                    yield _sse("ping", {"ts": ts})
                    continue
                yield _sse(msg["event"], msg["data"])
        except asyncio.CancelledError:
            # Client disconnected
            return
        finally:
            pomodoro_manager.unsubscribe(user_id, queue)

    return StreamingResponse(
        gen(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
