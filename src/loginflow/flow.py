"""Wiring of the login flow components.

:class:`LoginFlow` builds every component from one
:class:`~loginflow.models.Settings` object and exposes the operations an
application needs: start-up credential bootstrap, login-mode lookup,
password and simple login followed by the post-login bootstrap, session
resume, unauthorized handling, and logout.

Example::

    async with LoginFlow(resolve_settings()) as flow:
        await flow.start()
        if await flow.login_mode() is LoginMode.PASSWORD:
            target = await flow.password_login("ada", "secret")
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Mapping, Optional

import httpx

from loginflow.auth.bootstrap import CredentialBootstrapper
from loginflow.auth.credential_source import CredentialSource
from loginflow.auth.login import LoginService
from loginflow.auth.resolver import LoginModeResolver
from loginflow.cache import ModeStore
from loginflow.client.async_client import ApiClient
from loginflow.client.remote import RemoteModeClient
from loginflow.client.users import UsersClient
from loginflow.models import Credentials, LoginMode, NavigationTarget, Settings, User
from loginflow.notify import Notifier
from loginflow.session.bootstrap import SessionBootstrapper
from loginflow.session.preferences import UserPreferences
from loginflow.session.redirect import RedirectGuard
from loginflow.session.state import SessionState

logger = logging.getLogger(__name__)


class LoginFlow:
    """All login-flow components for one API, sharing one HTTP client.

    Must be used as an async context manager.

    Args:
        settings: Effective configuration.
        notifier: Presentation capability for server-down and login notices.
        transport: Optional custom HTTP transport (tests).
        mode_store: Persistent login-mode store. When omitted one is opened
            under the cache directory if ``settings.mode_cache.persist`` is
            set.
        clock: Time source for the login-mode TTL.
        sleep: Backoff sleep used by the resolver.
    """

    def __init__(
        self,
        settings: Settings,
        notifier: Optional[Notifier] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        mode_store: Optional[ModeStore] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self._owns_store = False
        if mode_store is None and settings.mode_cache.persist:
            from loginflow.config import get_cache_dir

            mode_store = ModeStore(get_cache_dir(), settings.api_base_url)
            self._owns_store = True
        self._mode_store = mode_store

        self.session = SessionState()
        self.guard = RedirectGuard(settings.base_path, self.session)
        self.client = ApiClient(
            settings.api_base_url,
            settings.request,
            on_unauthorized=self._on_unauthorized,
            transport=transport,
        )
        self.resolver = LoginModeResolver(
            RemoteModeClient(self.client),
            self.session,
            policy=settings.login_fallback,
            ttl=settings.mode_cache.ttl_seconds,
            store=mode_store,
            clock=clock,
            sleep=sleep,
        )
        self.credentials = CredentialBootstrapper(
            self.resolver,
            CredentialSource(settings.credentials_url, self.client),
            settings,
            client=self.client,
            notifier=notifier,
        )
        self.login = LoginService(self.client, self.resolver, self.session, settings.header_prefix)
        self.bootstrapper = SessionBootstrapper(
            UserPreferences(self.client),
            UsersClient(self.client),
            self.session,
            self.guard,
            notifier=notifier,
            login_notice=settings.login_notice,
        )

    async def __aenter__(self) -> LoginFlow:
        await self.client.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.resolver.aclose()
        await self.bootstrapper.drain()
        await self.client.__aexit__(*args)
        if self._owns_store and self._mode_store is not None:
            self._mode_store.close()

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def start(self, query_params: Optional[Mapping[str, str]] = None) -> Credentials:
        """Bootstrap credentials and capture the redirect parameter, if any."""
        if query_params is not None:
            self.bootstrapper.capture_redirect(query_params)
        return await self.credentials.bootstrap_credentials()

    async def login_mode(self, force: bool = False) -> LoginMode:
        return await self.resolver.resolve(force)

    async def users(self) -> list[User]:
        return await self.login.get_users()

    async def password_login(self, user: str, password: str) -> NavigationTarget:
        """Log in with a password and run the post-login bootstrap."""
        await self.login.password_login(user, password)
        return await self.bootstrapper.after_login()

    async def simple_login(self, name: str, users: Optional[list[User]] = None) -> NavigationTarget:
        """Log in by display name and run the post-login bootstrap."""
        await self.login.simple_login(name, users)
        return await self.bootstrapper.after_login()

    async def resume(self, current_path: str) -> Optional[str]:
        return await self.bootstrapper.resume(current_path)

    def handle_unauthorized(self, current_path: str) -> str:
        return self.guard.handle_unauthorized(current_path)

    def logout(self, current_path: str = "") -> str:
        return self.session.logout(current_path)

    def _on_unauthorized(self, status: int) -> None:
        logger.debug("Unauthorized response (%d); session is no longer valid", status)
        self.session.mark_unauthenticated()
