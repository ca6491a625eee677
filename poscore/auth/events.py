"""Auth state notifications (sign-in, sign-out, credential changes)."""

import inspect
from enum import Enum
from typing import Any, Callable, Optional

from poscore.utils import Logger

logger = Logger("auth.events")


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    PASSWORD_UPDATED = "PASSWORD_UPDATED"
    USER_UPDATED = "USER_UPDATED"


Subscriber = Callable[[AuthEvent, Optional[str]], Any]


class AuthEvents:
    """Publish/subscribe hub. Subscribers may be plain or async callables."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: AuthEvent, identity_id: Optional[str] = None) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(event, identity_id)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"auth event subscriber failed on {event.value}: {e}")
