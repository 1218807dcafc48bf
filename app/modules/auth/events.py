"""Auth state change notifications.

Subscribers are plain callables; ``subscribe`` returns a function that
removes the subscription again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from app.core.logging import get_logger


logger = get_logger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class AuthStateChange:
    event: AuthEvent
    user_id: int
    email: Optional[str] = None


AuthListener = Callable[[AuthStateChange], None]


class AuthStateNotifier:
    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, change: AuthStateChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Auth listener failed for %s", change.event.value)

    def signed_in(self, user_id: int, email: Optional[str] = None) -> None:
        self.publish(AuthStateChange(AuthEvent.SIGNED_IN, user_id, email))

    def signed_out(self, user_id: int) -> None:
        self.publish(AuthStateChange(AuthEvent.SIGNED_OUT, user_id))


auth_notifier = AuthStateNotifier()
