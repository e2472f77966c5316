"""Remote user preferences.

Preferences live server-side under a well-known key. They are loaded once
after login and written through on every change afterwards.
"""

from __future__ import annotations

import logging
from typing import Any

from loginflow.client.async_client import ApiClient
from loginflow.exceptions import LoginflowError, PreferencesLoadError

logger = logging.getLogger(__name__)

USER_PREFERENCES_KEY = "webapp"
"""Top-level key the client's preferences are stored under."""


class UserPreferences:
    """Loads and stores the current user's preferences.

    Args:
        client: An authenticated :class:`~loginflow.client.async_client.ApiClient`.
        key: Top-level preferences key.
    """

    def __init__(self, client: ApiClient, key: str = USER_PREFERENCES_KEY) -> None:
        self._client = client
        self._key = key
        self._values: dict[str, Any] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def values(self) -> dict[str, Any]:
        """A copy of the preferences loaded so far."""
        return dict(self._values)

    async def load(self) -> dict[str, Any]:
        """Fetch the preferences from the server.

        Raises:
            PreferencesLoadError: If the call fails or returns garbage. The
                originating error is chained as ``__cause__``.
        """
        try:
            data = await self._client.call("users.get_preferences", {})
        except LoginflowError as exc:
            raise PreferencesLoadError(f"Cannot load preferences: {exc}") from exc

        prefs = data.get("preferences", {}) if isinstance(data, dict) else None
        if not isinstance(prefs, dict):
            raise PreferencesLoadError("Cannot load preferences: unexpected payload")
        values = prefs.get(self._key) or {}
        if not isinstance(values, dict):
            raise PreferencesLoadError(f"Cannot load preferences: '{self._key}' is not an object")

        self._values = dict(values)
        self._loaded = True
        logger.debug("Loaded %d preferences", len(self._values))
        return self.values

    async def store(self, name: str, value: Any) -> None:
        """Set one preference and write it through to the server.

        Raises:
            PreferencesLoadError: If preferences were never loaded or the
                write fails.
        """
        if not self._loaded:
            raise PreferencesLoadError("Preferences must be loaded before storing")
        self._values[name] = value
        payload = {"preferences": {self._key: {name: value}}}
        try:
            await self._client.call("users.set_preferences", payload)
        except LoginflowError as exc:
            raise PreferencesLoadError(f"Cannot store preference '{name}': {exc}") from exc
