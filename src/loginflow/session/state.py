"""Observable session state.

:class:`StateCell` is a single-writer value with an ordered list of
subscriber callbacks. Changes are broadcast synchronously, in registration
order, to every subscriber registered at the time of the change.

:class:`SessionState` owns two cells -- the authenticated flag and the
currently resolved login mode -- and implements the session state machine::

    Unauthenticated --login--> Authenticated --logout | 401--> Unauthenticated
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, Optional, Protocol, TypeVar

from loginflow.models import LoginMode
from loginflow.session.redirect import login_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]
Unsubscribe = Callable[[], None]


class StateCell(Generic[T]):
    """A value that notifies subscribers when it changes.

    Args:
        initial: The starting value.
        name: Label used in log messages.

    Example::

        cell = StateCell(False, name="authenticated")
        seen = []
        unsubscribe = cell.subscribe(seen.append)
        cell.set(True)
        assert seen == [False, True]
        unsubscribe()
    """

    def __init__(self, initial: T, name: str = "state") -> None:
        self._value = initial
        self._name = name
        self._subscribers: list[Subscriber[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Subscriber[T], replay: bool = True) -> Unsubscribe:
        """Register *callback* for future changes.

        Args:
            callback: Called with the new value on every change.
            replay: When ``True`` the callback is invoked immediately with
                the current value.

        Returns:
            A function that removes the subscription. Calling it twice is
            harmless.
        """
        self._subscribers.append(callback)
        if replay:
            callback(self._value)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def set(self, value: T, force: bool = False) -> None:
        """Store *value* and broadcast it.

        Nothing is broadcast when the value is unchanged, unless *force* is
        set. A subscriber that raises is logged and skipped; the remaining
        subscribers still run.
        """
        changed = value != self._value
        self._value = value
        if not changed and not force:
            return
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("Subscriber of '%s' failed", self._name)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class _ModeCache(Protocol):
    def clear_cache(self) -> None: ...


class SessionState:
    """Authenticated/unauthenticated status plus the published login mode.

    This object is the only writer of both cells; other components change
    them through its methods.
    """

    def __init__(self) -> None:
        self.status: StateCell[bool] = StateCell(False, name="authenticated")
        self.mode: StateCell[Optional[LoginMode]] = StateCell(None, name="login_mode")
        self._mode_cache: Optional[_ModeCache] = None

    @property
    def authenticated(self) -> bool:
        return self.status.value

    @authenticated.setter
    def authenticated(self, value: bool) -> None:
        self.status.set(bool(value))

    def mark_authenticated(self) -> None:
        self.authenticated = True

    def mark_unauthenticated(self) -> None:
        self.authenticated = False

    def publish_mode(self, mode: LoginMode) -> None:
        """Broadcast *mode* to mode subscribers, even if it did not change."""
        self.mode.set(mode, force=True)

    def bind_mode_cache(self, cache: _ModeCache) -> None:
        """Attach the resolver whose cache is cleared on logout."""
        self._mode_cache = cache

    def logout(self, current_path: str = "") -> str:
        """End the session.

        Clears the login-mode cache, marks the session unauthenticated and
        returns the login route carrying *current_path* as redirect target.
        """
        if self._mode_cache is not None:
            self._mode_cache.clear_cache()
        self.mark_unauthenticated()
        logger.info("Logged out")
        return login_url(current_path)
