"""Post-login session bootstrap.

After a login exchange succeeds, :class:`SessionBootstrapper` finishes
setting up the session and decides where the user goes next:

1. the user's preferences are loaded and applied;
2. a refresh of the current user is started in the background;
3. the configured login notice is shown, once per login;
4. the redirect target captured when the login flow was entered (or ``/``)
   is returned as the navigation target.

A preferences failure only skips steps 1-3; the session already exists, so
navigation still happens.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

from loginflow.client.users import UsersClient
from loginflow.exceptions import LoginflowError, PreferencesLoadError, UnauthorizedError
from loginflow.models import NavigationTarget, Notification, NotificationKind, User
from loginflow.notify import Notifier, NullNotifier
from loginflow.session.preferences import UserPreferences
from loginflow.session.redirect import (
    LOGIN_PATH,
    RedirectGuard,
    sanitize_redirect_target,
)
from loginflow.session.state import SessionState, StateCell

logger = logging.getLogger(__name__)

REDIRECT_PARAM = "redirect"


class SessionBootstrapper:
    """Runs the post-login sequence and computes the navigation target.

    Args:
        preferences: Loader for the user's preferences.
        users: Client used for the current-user refresh.
        session: The session state machine.
        guard: Computes login URLs when a resumed session turns out to be
            unauthorized.
        notifier: Receives the login notice.
        login_notice: Notice text; ``None`` disables the notice.
    """

    def __init__(
        self,
        preferences: UserPreferences,
        users: UsersClient,
        session: SessionState,
        guard: RedirectGuard,
        notifier: Optional[Notifier] = None,
        login_notice: Optional[str] = None,
    ) -> None:
        self._preferences = preferences
        self._users = users
        self._session = session
        self._guard = guard
        self._notifier = notifier or NullNotifier()
        self._login_notice = login_notice
        self._redirect_target = ""
        self._redirect_captured = False
        self._notice_shown = False
        self._refreshes: set[asyncio.Task[None]] = set()

        self.applied_preferences: StateCell[dict[str, Any]] = StateCell({}, name="preferences")
        self.current_user: StateCell[Optional[User]] = StateCell(None, name="current_user")

        session.status.subscribe(self._on_status, replay=False)

    # ------------------------------------------------------------------ #
    # Redirect capture
    # ------------------------------------------------------------------ #

    @property
    def redirect_target(self) -> str:
        return self._redirect_target

    def capture_redirect(self, params: Mapping[str, str]) -> str:
        """Read the ``redirect`` query parameter on entry to the login flow.

        Only the first call has an effect. Login-route prefixes are removed
        and anything that is not a safe relative path is dropped.

        Returns:
            The captured target, ``""`` when there is none.
        """
        if self._redirect_captured:
            return self._redirect_target
        raw = params.get(REDIRECT_PARAM) or ""
        if raw.startswith(LOGIN_PATH):
            raw = raw[len(LOGIN_PATH):]
        self._redirect_target = sanitize_redirect_target(raw)
        self._redirect_captured = True
        logger.debug("Captured redirect target %r", self._redirect_target)
        return self._redirect_target

    def navigation_target(self) -> NavigationTarget:
        return NavigationTarget(url=self._redirect_target or "/")

    # ------------------------------------------------------------------ #
    # Post-login sequence
    # ------------------------------------------------------------------ #

    async def after_login(self) -> NavigationTarget:
        """Finish the session setup after a successful login exchange.

        Returns:
            The captured redirect target, or ``/``.
        """
        try:
            values = await self._preferences.load()
        except PreferencesLoadError as exc:
            logger.warning("Skipping preferences: %s", exc)
            return self.navigation_target()

        self.applied_preferences.set(values)
        self._schedule_user_refresh()
        self._show_login_notice()
        return self.navigation_target()

    async def resume(self, current_path: str) -> Optional[str]:
        """Restore an existing session on application start.

        Returns:
            A login URL when the user has to log in, or ``None`` when the
            session is usable and the user can stay on *current_path*.
        """
        if not self._session.authenticated:
            return self._guard.handle_unauthorized(current_path)

        self._schedule_user_refresh()
        try:
            values = await self._preferences.load()
        except PreferencesLoadError as exc:
            if isinstance(exc.__cause__, UnauthorizedError):
                return self._guard.handle_unauthorized(current_path)
            logger.warning("Session could not be restored: %s", exc)
            return LOGIN_PATH

        self.applied_preferences.set(values)
        return None

    @property
    def pending_refreshes(self) -> int:
        return len(self._refreshes)

    async def drain(self) -> None:
        """Wait for background current-user refreshes to finish."""
        if self._refreshes:
            await asyncio.gather(*self._refreshes)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _schedule_user_refresh(self) -> None:
        task = asyncio.get_running_loop().create_task(self._refresh_current_user())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def _refresh_current_user(self) -> None:
        try:
            user = await self._users.get_current_user()
        except LoginflowError as exc:
            logger.warning("Current user refresh failed: %s", exc)
            return
        self.current_user.set(user)

    def _show_login_notice(self) -> None:
        if not self._login_notice or self._notice_shown:
            return
        self._notice_shown = True
        self._notifier.notify(
            Notification(
                kind=NotificationKind.LOGIN_NOTICE,
                body=self._login_notice,
                action="OK",
            )
        )

    def _on_status(self, authenticated: bool) -> None:
        if not authenticated:
            self._notice_shown = False
            self.current_user.set(None)
