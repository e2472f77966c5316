"""Login-mode resolution with TTL caching, retry, and request coalescing.

:class:`LoginModeResolver` answers one question -- *how should this client
log in?* -- and keeps the answer for a while:

1. A non-expired cached answer is returned immediately unless the caller
   forces a refresh.
2. Otherwise the supported modes are queried, with up to three attempts
   and a linear backoff of 0.5 s, 1.0 s between them.
3. A successful answer is turned into a mode by :func:`derive_mode`.
4. When every attempt fails, the configured
   :class:`~loginflow.models.FallbackPolicy` decides between
   ``error`` and ``simple``.

Either outcome is cached for the TTL and published through the
:class:`~loginflow.session.state.SessionState`. Concurrent callers share a
single in-flight resolution.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

import httpx

from loginflow.cache import ModeStore
from loginflow.exceptions import LoginflowError, ModeResolutionError
from loginflow.models import FallbackPolicy, LoginMode, ModeCapabilities, ResolvedMode
from loginflow.session.state import SessionState

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
"""Attempts made against the supported-modes endpoint per resolution."""

BACKOFF_STEP = 0.5
"""Seconds of delay per attempt number between attempts."""

DEFAULT_TTL = 600.0
"""Seconds a resolved mode is trusted (10 minutes)."""


class CapabilitiesSource(Protocol):
    """Anything that can report the backend's login capabilities."""

    async def get_capabilities(self) -> ModeCapabilities: ...


def derive_mode(capabilities: ModeCapabilities) -> LoginMode:
    """Map a successful capabilities answer to a login mode.

    Basic auth wins over SSO. A backend offering neither yields ``error``
    under either policy: the ``simple`` fallback only applies when the
    backend could not be asked at all.
    """
    if capabilities.basic_enabled:
        return LoginMode.PASSWORD
    if capabilities.sso_providers:
        return LoginMode.SSO_ONLY
    return LoginMode.ERROR


def fallback_mode(policy: FallbackPolicy) -> LoginMode:
    """Return the mode to use when the backend could not be reached."""
    if policy is FallbackPolicy.ERROR:
        return LoginMode.ERROR
    return LoginMode.SIMPLE


class LoginModeResolver:
    """Resolves, caches, and publishes the active login mode.

    The resolver is the only writer of its :class:`~loginflow.models.ResolvedMode`.

    Args:
        remote: Source of capability flags, usually a
            :class:`~loginflow.client.remote.RemoteModeClient`.
        session: Session state that receives the authenticated flag and the
            resolved mode. Logging out of it clears this resolver's cache.
        policy: Fallback policy applied when every attempt fails.
        ttl: Seconds a resolution stays valid.
        store: Optional persistent store shared between processes.
        clock: Returns the current time in epoch seconds.
        sleep: Coroutine used for backoff delays.
        max_attempts: Attempts per resolution.

    Example::

        resolver = LoginModeResolver(RemoteModeClient(client), session)
        mode = await resolver.resolve()
    """

    def __init__(
        self,
        remote: CapabilitiesSource,
        session: Optional[SessionState] = None,
        policy: FallbackPolicy = FallbackPolicy.SIMPLE,
        ttl: float = DEFAULT_TTL,
        store: Optional[ModeStore] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self._remote = remote
        self._session = session
        self._policy = policy
        self._ttl = ttl
        self._store = store
        self._clock = clock
        self._sleep = sleep
        self._max_attempts = max_attempts
        self._resolved: Optional[ResolvedMode] = None
        self._pending: Optional[asyncio.Task[LoginMode]] = None
        self._detached: set[asyncio.Task[LoginMode]] = set()
        self._generation = 0
        self._last_failed = False
        if session is not None:
            session.bind_mode_cache(self)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def policy(self) -> FallbackPolicy:
        return self._policy

    @property
    def cached_mode(self) -> Optional[LoginMode]:
        """The cached mode while it is still valid, else ``None``."""
        resolved = self._valid_resolution()
        return resolved.mode if resolved is not None else None

    @property
    def last_resolution_failed(self) -> bool:
        """Whether the latest resolution fell back because the backend was unreachable."""
        return self._last_failed

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    async def resolve(self, force: bool = False) -> LoginMode:
        """Return the active login mode.

        Never raises a :class:`~loginflow.exceptions.LoginflowError`; the
        worst outcome is :attr:`~loginflow.models.LoginMode.ERROR`. Callers
        arriving while a resolution is in flight, forced or not, wait for
        that resolution instead of starting another.

        Args:
            force: Ignore the cached mode and ask the backend again.

        Raises:
            asyncio.CancelledError: If the in-flight resolution was
                abandoned with :meth:`cancel`.
        """
        if not force:
            resolved = self._valid_resolution()
            if resolved is not None:
                logger.debug("Login mode cache hit: %s", resolved.mode.value)
                return resolved.mode

        if self._pending is None or self._pending.done():
            task = asyncio.get_running_loop().create_task(self._resolve_remote())
            task.add_done_callback(self._forget_pending)
            self._pending = task
        else:
            logger.debug("Joining in-flight login mode resolution")
        return await asyncio.shield(self._pending)

    def clear_cache(self) -> None:
        """Drop the cached resolution; the next :meth:`resolve` asks the backend.

        A resolution still in flight is detached: its callers get its answer,
        but it no longer writes the cache or the session.
        """
        self._generation += 1
        self._resolved = None
        if self._pending is not None:
            self._detached.add(self._pending)
            self._pending.add_done_callback(self._detached.discard)
            self._pending = None
        if self._store is not None:
            self._store.clear()
        logger.debug("Login mode cache cleared")

    def cancel(self) -> None:
        """Abandon the in-flight resolution, if any.

        No cache update happens and no further retries fire.
        """
        for task in self._tasks():
            logger.debug("Cancelling in-flight login mode resolution")
            task.cancel()

    async def aclose(self) -> None:
        """Cancel every outstanding resolution and wait until it has stopped."""
        tasks = self._tasks()
        self.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _valid_resolution(self) -> Optional[ResolvedMode]:
        now = self._clock()
        if self._resolved is not None:
            if self._resolved.is_valid(now):
                return self._resolved
            logger.debug("Cached login mode expired")
            self._resolved = None
        if self._store is not None:
            stored = self._store.load()
            if stored is not None and stored.is_valid(now):
                self._resolved = stored
                return stored
        return None

    def _tasks(self) -> list[asyncio.Task[LoginMode]]:
        tasks = list(self._detached)
        if self._pending is not None:
            tasks.append(self._pending)
        return tasks

    def _forget_pending(self, task: asyncio.Task[LoginMode]) -> None:
        if self._pending is task:
            self._pending = None

    async def _resolve_remote(self) -> LoginMode:
        generation = self._generation
        try:
            capabilities = await self._fetch_with_retry()
        except ModeResolutionError as exc:
            mode = fallback_mode(self._policy)
            if generation != self._generation:
                logger.debug("Discarding login mode resolved before the cache was cleared")
                return mode
            logger.warning(
                "Login mode resolution failed (%s); falling back to '%s'", exc, mode.value
            )
            self._last_failed = True
            self._remember(mode)
            return mode

        mode = derive_mode(capabilities)
        if generation != self._generation:
            logger.debug("Discarding login mode resolved before the cache was cleared")
            return mode
        logger.info("Resolved login mode: %s", mode.value)
        self._last_failed = False
        if self._session is not None:
            self._session.authenticated = capabilities.authenticated
        self._remember(mode)
        return mode

    async def _fetch_with_retry(self) -> ModeCapabilities:
        last_error: Optional[Exception] = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._remote.get_capabilities()
            except (LoginflowError, httpx.HTTPError) as exc:
                last_error = exc
                if attempt < self._max_attempts:
                    delay = BACKOFF_STEP * attempt
                    logger.debug(
                        "Supported modes query failed: %s, retrying in %.1fs (attempt %d/%d)",
                        exc,
                        delay,
                        attempt,
                        self._max_attempts,
                    )
                    await self._sleep(delay)
        raise ModeResolutionError(
            f"Supported modes query failed after {self._max_attempts} attempts: {last_error}"
        ) from last_error

    def _remember(self, mode: LoginMode) -> None:
        self._resolved = ResolvedMode(mode=mode, resolved_at=self._clock(), ttl=self._ttl)
        if self._store is not None:
            self._store.save(self._resolved)
        if self._session is not None:
            self._session.publish_mode(mode)
