"""Per-user view router with a back stack.

Kept in-process only, like the other interactive state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from app.modules.auth.events import AuthStateChange, AuthStateNotifier


class View(str, Enum):
    ASSISTANT = "assistant"
    DASHBOARD = "dashboard"
    LIBRARY = "library"
    LEADERBOARD = "leaderboard"
    POMODORO = "pomodoro"
    ANALYTICS = "analytics"
    PROFILE = "profile"
    ANALYZER = "analyzer"


INITIAL_VIEW = View.ASSISTANT


@dataclass
class NavigationState:
    current_view: View = INITIAL_VIEW
    history: list[View] = field(default_factory=list)
    active_source_id: Optional[str] = None

    @property
    def can_go_back(self) -> bool:
        return bool(self.history)

    def set_view(self, view: View) -> None:
        if view == self.current_view:
            return
        self.history.append(self.current_view)
        self.active_source_id = None
        self.current_view = view

    def back(self) -> None:
        if not self.history:
            return
        self.active_source_id = None
        self.current_view = self.history.pop()

    def open_source(self, source_id: str) -> None:
        self.active_source_id = source_id

    def close_source(self) -> None:
        self.active_source_id = None

    def reset(self) -> None:
        self.current_view = INITIAL_VIEW
        self.history.clear()
        self.active_source_id = None


class NavigationManager:
    def __init__(self) -> None:
        self._states: dict[int, NavigationState] = {}

    def get(self, user_id: int) -> NavigationState:
        state = self._states.get(user_id)
        if state is None:
            state = self._states[user_id] = NavigationState()
        return state

    def reset(self, user_id: int) -> None:
        self.get(user_id).reset()

    def forget(self, user_id: int) -> None:
        self._states.pop(user_id, None)

    def on_auth_change(self, change: AuthStateChange) -> None:
        self.reset(change.user_id)

    def bind(self, notifier: AuthStateNotifier) -> Callable[[], None]:
        return notifier.subscribe(self.on_auth_change)


navigation_manager = NavigationManager()
