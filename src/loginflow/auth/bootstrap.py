"""Startup credential selection.

Before any authenticated call is made, :class:`CredentialBootstrapper`
decides which key/secret pair backs the client's internal calls:

* in ``simple`` mode, the local credentials artifact, or the environment
  defaults when it cannot be read;
* in every other mode, the environment defaults.

The login-mode lookup itself cannot fail here: the resolver always
produces a terminal mode. When that mode is ``error`` because the backend
was unreachable, a ``server_unavailable`` notification is emitted.
"""

from __future__ import annotations

import logging
from typing import Optional

from loginflow.auth.credential_source import CredentialSource
from loginflow.auth.resolver import LoginModeResolver
from loginflow.client.async_client import ApiClient
from loginflow.exceptions import CredentialFallbackError
from loginflow.models import Credentials, LoginMode, Notification, NotificationKind, Settings
from loginflow.notify import Notifier, NullNotifier

logger = logging.getLogger(__name__)


class CredentialBootstrapper:
    """Chooses the credentials used for internal calls.

    Args:
        resolver: Login-mode resolver consulted once per bootstrap.
        source: Reader for the local credentials artifact.
        settings: Supplies environment defaults and the server-down message.
        client: When given, the chosen credentials become its active
            credentials.
        notifier: Receives the server-unavailable notification.
    """

    def __init__(
        self,
        resolver: LoginModeResolver,
        source: CredentialSource,
        settings: Settings,
        client: Optional[ApiClient] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self._resolver = resolver
        self._source = source
        self._settings = settings
        self._client = client
        self._notifier = notifier or NullNotifier()
        self.credentials: Optional[Credentials] = None

    async def bootstrap_credentials(self) -> Credentials:
        """Resolve the login mode and pick credentials accordingly.

        Returns:
            The credentials now in use. Never raises for an unreachable
            backend or a missing credentials artifact.
        """
        mode = await self._resolver.resolve(False)

        if mode is LoginMode.ERROR and self._resolver.last_resolution_failed:
            self._notify_server_unavailable()

        if mode is LoginMode.SIMPLE:
            credentials = await self._local_or_default()
        else:
            credentials = self._settings.default_credentials()

        self.credentials = credentials
        if self._client is not None:
            self._client.credentials = credentials
        return credentials

    async def _local_or_default(self) -> Credentials:
        try:
            return await self._source.fetch()
        except CredentialFallbackError as exc:
            logger.warning("Using configured credentials: %s", exc)
            return self._settings.default_credentials()

    def _notify_server_unavailable(self) -> None:
        logger.error("Login mode could not be resolved and no fallback is allowed")
        self._notifier.notify(
            Notification(
                kind=NotificationKind.SERVER_UNAVAILABLE,
                title="Server Unavailable",
                body=self._settings.server_down_message,
                action="Reload",
            )
        )
