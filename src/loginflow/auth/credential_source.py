"""Local fallback credentials.

In simple mode the client may ship a ``credentials.json`` artifact next to
the application::

    {"userKey": "...", "userSecret": "...", "companyID": "..."}

:class:`CredentialSource` reads it from a URL (through the API client's
transport) or from a filesystem path. Every failure is reported as
:class:`~loginflow.exceptions.CredentialFallbackError` so the caller can
substitute the environment defaults.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from loginflow.client.async_client import ApiClient
from loginflow.exceptions import CredentialFallbackError, LoginflowError
from loginflow.models import Credentials

logger = logging.getLogger(__name__)


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class CredentialSource:
    """Produces credentials from the local credentials artifact.

    Args:
        location: URL or file path of the artifact.
        client: API client used when *location* is a URL.
    """

    def __init__(self, location: str, client: Optional[ApiClient] = None) -> None:
        self._location = location
        self._client = client

    @property
    def location(self) -> str:
        return self._location

    async def fetch(self) -> Credentials:
        """Read and parse the artifact.

        Raises:
            CredentialFallbackError: If the artifact is missing, unreachable,
                or not a JSON object.
        """
        data = await self._read()
        if not isinstance(data, dict):
            raise CredentialFallbackError(f"Credentials artifact {self._location} is not an object")
        credentials = Credentials.from_artifact(data)
        if not credentials.key:
            raise CredentialFallbackError(f"Credentials artifact {self._location} has no userKey")
        logger.debug("Loaded credentials from %s", self._location)
        return credentials

    async def _read(self) -> Any:
        if _is_url(self._location):
            if self._client is None:
                raise CredentialFallbackError("No client available to fetch credentials artifact")
            try:
                response = await self._client.get(self._location, auth=False)
                return response.json()
            except (LoginflowError, ValueError) as exc:
                raise CredentialFallbackError(
                    f"Cannot fetch credentials artifact {self._location}: {exc}"
                ) from exc

        path = Path(self._location).expanduser()
        if not path.is_file():
            raise CredentialFallbackError(f"Credentials artifact not found: {path}")
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CredentialFallbackError(f"Cannot read credentials artifact {path}: {exc}") from exc
