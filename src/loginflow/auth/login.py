"""Login exchanges.

Two strategies are supported:

* **Password** -- the user's name and password are sent as a Basic
  ``Authorization`` header to ``auth.login``. The server answers with a
  session cookie that the client keeps.
* **Simple** -- demo/anonymous login by display name. The bootstrapped
  credentials impersonate an existing user (``<prefix>-Impersonate-As``);
  an unknown name first auto-creates a user. Only available while the
  login mode is ``simple``.

Login failures are never retried. They surface as
:class:`~loginflow.exceptions.LoginExchangeError`.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from loginflow.auth.resolver import LoginModeResolver
from loginflow.client.async_client import ApiClient
from loginflow.client.users import UsersClient
from loginflow.exceptions import InvalidUsageError, LoginExchangeError, LoginflowError
from loginflow.models import LoginMode, Session, User, basic_auth_value
from loginflow.session.state import SessionState

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "auth.login"
CREATE_USER_ENDPOINT = "auth.create_user"
AUTO_USER_EMAIL_DOMAIN = "test.ai"


def split_display_name(name: str) -> tuple[str, str]:
    """Split *name* into given and family name on the first space.

    A single word is used for both parts.

    Example::

        >>> split_display_name("Ada Lovelace")
        ('Ada', 'Lovelace')
        >>> split_display_name("Plato")
        ('Plato', 'Plato')
    """
    parts = name.split(" ")
    given = parts[0]
    family = parts[1] if len(parts) > 1 and parts[1] else given
    return given, family


def find_user(users: list[User], name: str) -> Optional[User]:
    """Return the user whose name equals *name*, ignoring case."""
    wanted = name.casefold()
    for user in users:
        if user.name.casefold() == wanted:
            return user
    return None


def filter_users(users: list[User], text: str) -> list[User]:
    """Return users whose name contains *text*, ignoring case."""
    needle = text.casefold()
    return [u for u in users if needle in u.name.casefold()]


class LoginService:
    """Performs password and simple-mode logins.

    Args:
        client: The API client; its cookie jar holds the resulting session.
        resolver: Consulted to make sure simple login is allowed.
        session: Marked authenticated after each successful exchange.
        header_prefix: Prefix of the impersonation header.
    """

    def __init__(
        self,
        client: ApiClient,
        resolver: LoginModeResolver,
        session: SessionState,
        header_prefix: str = "X-Loginflow",
    ) -> None:
        self._client = client
        self._resolver = resolver
        self._session = session
        self._header_prefix = header_prefix
        self._users = UsersClient(client)

    @property
    def impersonation_header(self) -> str:
        return f"{self._header_prefix}-Impersonate-As"

    async def get_users(self) -> list[User]:
        """Return the users a simple-mode login can pick from."""
        return await self._users.get_all()

    async def password_login(self, user: str, password: str) -> Session:
        """Exchange a user name and password for a session.

        The user name is trimmed; the password is sent as given.

        Raises:
            InvalidUsageError: If the login mode is not ``password``.
            LoginExchangeError: If the server rejects the credentials or
                cannot be reached.
        """
        mode = await self._resolver.resolve(False)
        if mode is not LoginMode.PASSWORD:
            raise InvalidUsageError(f"Password login is not available in '{mode.value}' mode")

        user = user.strip()
        headers = {"Authorization": basic_auth_value(user, password)}
        data = await self._exchange(headers)
        logger.info("Password login succeeded for '%s'", user)
        return self._session_from(data, user_id=None)

    async def login(self, user_id: str) -> Session:
        """Log in as *user_id* by impersonation with the bootstrapped credentials.

        Raises:
            LoginExchangeError: If the exchange fails.
        """
        data = await self._exchange({self.impersonation_header: user_id})
        logger.info("Logged in as user %s", user_id)
        return self._session_from(data, user_id=user_id)

    async def create_user(self, name: str) -> str:
        """Create a user named *name* with a random unique email.

        Returns:
            The new user's id.

        Raises:
            LoginExchangeError: If the user cannot be created.
        """
        given_name, family_name = split_display_name(name)
        credentials = self._client.credentials
        payload = {
            "email": f"{uuid.uuid1()}@{AUTO_USER_EMAIL_DOMAIN}",
            "name": name,
            "company": credentials.tenant_id if credentials else "",
            "given_name": given_name,
            "family_name": family_name,
        }
        try:
            data = await self._client.call(CREATE_USER_ENDPOINT, payload)
        except LoginflowError as exc:
            raise LoginExchangeError(f"Cannot create user '{name}': {exc}") from exc
        if not isinstance(data, dict) or not data.get("id"):
            raise LoginExchangeError(f"Cannot create user '{name}': no id returned")
        logger.info("Created user '%s' (%s)", name, data["id"])
        return str(data["id"])

    async def auto_login(self, name: str) -> Session:
        """Create a user named *name* and log in as that user."""
        user_id = await self.create_user(name)
        return await self.login(user_id)

    async def simple_login(self, name: str, users: Optional[list[User]] = None) -> Session:
        """Log in by display name, creating the user when it does not exist.

        Args:
            name: Display name typed by the user.
            users: Previously fetched user list. Fetched when omitted.

        Raises:
            InvalidUsageError: If the login mode is not ``simple`` or the
                name is blank.
            LoginExchangeError: If the exchange fails.
        """
        mode = await self._resolver.resolve(False)
        if mode is not LoginMode.SIMPLE:
            raise InvalidUsageError(f"Simple login is not available in '{mode.value}' mode")

        name = name.strip()
        if not name:
            raise InvalidUsageError("A name is required")

        if users is None:
            try:
                users = await self.get_users()
            except LoginflowError as exc:
                raise LoginExchangeError(f"Cannot list users: {exc}") from exc

        existing = find_user(users, name)
        if existing is not None:
            return await self.login(existing.id)
        return await self.auto_login(name)

    async def _exchange(self, headers: dict[str, str]) -> Any:
        try:
            data = await self._client.call(LOGIN_ENDPOINT, None, headers=headers)
        except LoginflowError as exc:
            raise LoginExchangeError(f"Login failed: {exc}") from exc
        self._session.mark_authenticated()
        return data

    def _session_from(self, data: Any, user_id: Optional[str]) -> Session:
        token = data.get("token") if isinstance(data, dict) else None
        return Session(user_id=user_id, token=token, cookies=self._client.cookies)
