"""
Reactive permission hooks for UI code.

CurrentUserStore is the one place the signed-in user's profile lives on
the client side. It re-queries through its loader whenever the auth
events hub announces a change for the user it follows, and notifies its
own listeners afterwards. PermissionHook and RoleHook are derived views
over the store.

These only decide what to *show*. Enforcement happens in the route gate
and the API decorators.
"""

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from poscore.auth.events import AuthEvent, AuthEvents
from poscore.utils import Logger
from .permissions import CapabilityLike, can_perform
from .roles import Role

if TYPE_CHECKING:
    from poscore.auth.resolver import Profile

logger = Logger("rbac.hooks")

ProfileLoader = Callable[[], Awaitable[Optional["Profile"]]]
Listener = Callable[["CurrentUserStore"], Any]


class CurrentUserStore:
    """
    Holds the current user's profile.

    `identity_id` pins the store to one identity; without it the store
    follows whichever profile it last loaded. Events about other
    identities are ignored.
    """

    def __init__(
        self,
        loader: ProfileLoader,
        events: AuthEvents,
        identity_id: Optional[str] = None,
    ):
        self._loader = loader
        self._identity_id = identity_id
        self._listeners: list[Listener] = []
        # bumped by every refresh; only the latest one may publish its result
        self._generation = 0
        self.profile: Optional["Profile"] = None
        self.loading = True
        self._unsubscribe = events.subscribe(self._on_auth_event)

    def _follows(self, identity_id: Optional[str]) -> bool:
        if identity_id is None:
            return True
        current = self._identity_id or (self.profile.id if self.profile else None)
        return current is None or current == identity_id

    async def _on_auth_event(self, event: AuthEvent, identity_id: Optional[str]) -> None:
        if not self._follows(identity_id):
            return
        logger.debug(f"auth event {event.value}, refreshing current user")
        await self.refresh()

    async def refresh(self) -> Optional["Profile"]:
        self._generation += 1
        generation = self._generation
        self.loading = True

        try:
            profile = await self._loader()
        except Exception as e:
            logger.error(f"failed to load current user: {e}")
            profile = None

        if generation != self._generation:
            logger.debug("discarding superseded current-user load")
            return self.profile

        self.profile = profile
        self.loading = False
        await self._notify()
        return self.profile

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            result = listener(self)
            if inspect.isawaitable(result):
                await result

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()


class PermissionHook:
    """`value` is True only when a loaded, active user holds the capability."""

    def __init__(self, store: CurrentUserStore, capability: CapabilityLike):
        self.store = store
        self.capability = capability

    @property
    def value(self) -> bool:
        profile = self.store.profile
        if self.store.loading or profile is None or not profile.is_active:
            return False
        return can_perform(profile.role, self.capability)

    def __bool__(self) -> bool:
        return self.value


class RoleHook:
    def __init__(self, store: CurrentUserStore):
        self.store = store

    @property
    def value(self) -> Optional[Role]:
        if self.store.loading or self.store.profile is None:
            return None
        return self.store.profile.role
