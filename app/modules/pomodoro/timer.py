"""Pomodoro timer state machine and its per-user asyncio runner.

``PomodoroTimer`` is pure: one ``tick`` is one second. ``PomodoroManager``
owns a ticker task per active timer and fans state out to SSE subscribers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.core.logging import get_logger
from app.modules.auth.events import AuthEvent, AuthStateChange


logger = get_logger(__name__)


class TimerMode(str, Enum):
    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


class NotificationPermission(str, Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


MODE_LABELS = {
    TimerMode.WORK: "Focus Session",
    TimerMode.SHORT_BREAK: "Short Break",
    TimerMode.LONG_BREAK: "Long Break",
}


class PomodoroNotification(BaseModel):
    title: str
    body: str


class PomodoroState(BaseModel):
    mode: TimerMode
    label: str
    time_left: int
    display: str
    is_active: bool
    cycles: int
    notification_permission: NotificationPermission


@dataclass
class TickResult:
    finished: bool = False
    completed_work: bool = False
    notification: Optional[PomodoroNotification] = None


def format_time(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def default_durations() -> dict[TimerMode, int]:
    return {
        TimerMode.WORK: settings.study.work_minutes * 60,
        TimerMode.SHORT_BREAK: settings.study.short_break_minutes * 60,
        TimerMode.LONG_BREAK: settings.study.long_break_minutes * 60,
    }


class PomodoroTimer:
    def __init__(
        self,
        durations: Optional[dict[TimerMode, int]] = None,
        cycles_before_long_break: Optional[int] = None,
    ) -> None:
        self.durations = durations or default_durations()
        self.cycles_before_long_break = (
            cycles_before_long_break or settings.study.cycles_before_long_break
        )
        self.mode = TimerMode.WORK
        self.time_left = self.durations[TimerMode.WORK]
        self.is_active = False
        self.cycles = 0
        self.permission = NotificationPermission.DEFAULT

    def _enter(self, mode: TimerMode) -> None:
        self.mode = mode
        self.time_left = self.durations[mode]

    def toggle(self) -> None:
        self.is_active = not self.is_active

    def reset(self) -> None:
        self.is_active = False
        self.cycles = 0
        self._enter(TimerMode.WORK)

    def set_permission(self, permission: NotificationPermission) -> None:
        self.permission = permission

    def tick(self) -> TickResult:
        if not self.is_active:
            return TickResult()
        if self.time_left > 0:
            self.time_left -= 1
        if self.time_left > 0:
            return TickResult()
        return self._finish()

    def _finish(self) -> TickResult:
        was_work = self.mode == TimerMode.WORK
        notification = None
        if self.permission == NotificationPermission.GRANTED:
            notification = (
                PomodoroNotification(title="Work session over!", body="Time for a short break.")
                if was_work
                else PomodoroNotification(title="Break's over!", body="Time to get back to focus!")
            )

        if was_work:
            self.cycles += 1
            if self.cycles % self.cycles_before_long_break == 0:
                self._enter(TimerMode.LONG_BREAK)
            else:
                self._enter(TimerMode.SHORT_BREAK)
        else:
            self._enter(TimerMode.WORK)
        return TickResult(finished=True, completed_work=was_work, notification=notification)

    def to_state(self) -> PomodoroState:
        return PomodoroState(
            mode=self.mode,
            label=MODE_LABELS[self.mode],
            time_left=self.time_left,
            display=format_time(self.time_left),
            is_active=self.is_active,
            cycles=self.cycles,
            notification_permission=self.permission,
        )


WorkCompleted = Callable[[int], Awaitable[Any]]


async def record_pomodoro(user_id: int) -> None:
    from app.core.db.base import async_session_maker
    from app.modules.progress.service import ProgressService

    async with async_session_maker() as session:
        await ProgressService(session).complete_pomodoro_session(user_id)


@dataclass
class _UserTimer:
    timer: PomodoroTimer
    task: Optional[asyncio.Task] = None
    subscribers: set[asyncio.Queue] = field(default_factory=set)


class PomodoroManager:
    def __init__(
        self,
        on_work_completed: Optional[WorkCompleted] = None,
        tick_seconds: Optional[float] = None,
        timer_factory: Callable[[], PomodoroTimer] = PomodoroTimer,
    ) -> None:
        self._on_work_completed = on_work_completed or record_pomodoro
        self.tick_seconds = tick_seconds or settings.study.tick_seconds
        self._timer_factory = timer_factory
        self._users: dict[int, _UserTimer] = {}

    def _entry(self, user_id: int) -> _UserTimer:
        entry = self._users.get(user_id)
        if entry is None:
            entry = self._users[user_id] = _UserTimer(timer=self._timer_factory())
        return entry

    def get(self, user_id: int) -> PomodoroTimer:
        return self._entry(user_id).timer

    def state(self, user_id: int) -> PomodoroState:
        return self.get(user_id).to_state()

    # Commands -----------------------------------------------------------
    def toggle(self, user_id: int) -> PomodoroState:
        entry = self._entry(user_id)
        entry.timer.toggle()
        if entry.timer.is_active:
            self._ensure_ticker(user_id, entry)
        else:
            self._cancel_ticker(entry)
        return self._publish_state(user_id)

    def reset(self, user_id: int) -> PomodoroState:
        entry = self._entry(user_id)
        self._cancel_ticker(entry)
        entry.timer.reset()
        return self._publish_state(user_id)

    def set_permission(
        self, user_id: int, permission: NotificationPermission
    ) -> PomodoroState:
        self.get(user_id).set_permission(permission)
        return self._publish_state(user_id)

    # Streaming ----------------------------------------------------------
    def subscribe(self, user_id: int) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._entry(user_id).subscribers.add(queue)
        return queue

    def unsubscribe(self, user_id: int, queue: asyncio.Queue) -> None:
        entry = self._users.get(user_id)
        if entry:
            entry.subscribers.discard(queue)

    def _emit(self, user_id: int, event: str, data: dict) -> None:
        entry = self._users.get(user_id)
        if not entry:
            return
        for queue in list(entry.subscribers):
            queue.put_nowait({"event": event, "data": data})

    def _publish_state(self, user_id: int) -> PomodoroState:
        state = self.state(user_id)
        self._emit(user_id, "state", state.model_dump(mode="json"))
        return state

    # Ticker -------------------------------------------------------------
    def _ensure_ticker(self, user_id: int, entry: _UserTimer) -> None:
        if entry.task and not entry.task.done():
            return
        entry.task = asyncio.create_task(self._run(user_id, entry))

    def _cancel_ticker(self, entry: _UserTimer) -> None:
        if entry.task and not entry.task.done():
            entry.task.cancel()
        entry.task = None

    async def _run(self, user_id: int, entry: _UserTimer) -> None:
        try:
            while entry.timer.is_active:
                await asyncio.sleep(self.tick_seconds)
                result = entry.timer.tick()
                if result.completed_work:
                    try:
                        await self._on_work_completed(user_id)
                    except Exception:
                        logger.exception(
                            "Failed to record Pomodoro session", extra={"user_id": user_id}
                        )
                if result.notification:
                    self._emit(user_id, "notification", result.notification.model_dump())
                self._publish_state(user_id)
        except asyncio.CancelledError:
            return

    # Lifecycle ----------------------------------------------------------
    def forget(self, user_id: int) -> None:
        entry = self._users.pop(user_id, None)
        if entry:
            self._cancel_ticker(entry)

    def on_auth_change(self, change: AuthStateChange) -> None:
        if change.event == AuthEvent.SIGNED_OUT:
            self.forget(change.user_id)

    async def stop(self) -> None:
        tasks = [e.task for e in self._users.values() if e.task and not e.task.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        for entry in self._users.values():
            entry.task = None


pomodoro_manager = PomodoroManager()
