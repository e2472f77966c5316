"""Remote supported-modes query."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from loginflow.client.async_client import ApiClient
from loginflow.exceptions import ModeResolutionError
from loginflow.models import LoginModeResponse, ModeCapabilities

logger = logging.getLogger(__name__)

SUPPORTED_MODES_ENDPOINT = "login.supported_modes"


class RemoteModeClient:
    """Asks the authentication backend which login modes it supports.

    The query is an idempotent read; callers may repeat it freely.

    Args:
        client: An open :class:`~loginflow.client.async_client.ApiClient`.
    """

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_capabilities(self) -> ModeCapabilities:
        """Query the backend and return its capability flags.

        Raises:
            ModeResolutionError: If the answer is not a supported-modes document.
            ConnectionError_: On network failure.
            ServerError: On an error status.
        """
        data = await self._client.call(SUPPORTED_MODES_ENDPOINT, {})
        if not isinstance(data, dict):
            raise ModeResolutionError(f"Unexpected supported-modes payload: {data!r}")
        try:
            response = LoginModeResponse.model_validate(data)
        except ValidationError as exc:
            raise ModeResolutionError(f"Malformed supported-modes payload: {exc}") from exc
        caps = ModeCapabilities.from_response(response)
        logger.debug(
            "Capabilities: basic=%s sso=%s authenticated=%s",
            caps.basic_enabled,
            sorted(caps.sso_providers),
            caps.authenticated,
        )
        return caps
