"""User listing and current-user calls."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from loginflow.client.async_client import ApiClient
from loginflow.exceptions import ServerError
from loginflow.models import User


def _users_from(data: Any) -> list[User]:
    raw = data.get("users", []) if isinstance(data, dict) else data
    try:
        return [User.model_validate(item) for item in raw or []]
    except (TypeError, ValidationError) as exc:
        raise ServerError(f"Malformed user list: {exc}") from exc


class UsersClient:
    """Read-only user endpoints.

    Args:
        client: An open :class:`~loginflow.client.async_client.ApiClient`.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_all(self) -> list[User]:
        """Return every user record (``{id, name}``) visible to the credentials."""
        return _users_from(await self._client.call("users.get_all"))

    async def get_current_user(self) -> User:
        """Return the user the current session belongs to."""
        data = await self._client.call("users.get_current_user")
        raw = data.get("user", data) if isinstance(data, dict) else data
        try:
            return User.model_validate(raw)
        except ValidationError as exc:
            raise ServerError(f"Malformed current user: {exc}") from exc
