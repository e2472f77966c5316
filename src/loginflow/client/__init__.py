"""HTTP client module for loginflow.

Provides :class:`ApiClient`, an async wrapper over :mod:`httpx` with Basic
credential injection, cookie-based sessions and error mapping, plus the
endpoint groups built on it:

* :class:`RemoteModeClient` -- the supported-login-modes query.
* :class:`UsersClient` -- user listing and current-user lookup.

Example::

    from loginflow.client import ApiClient, RemoteModeClient

    async with ApiClient("https://api.example.com") as client:
        caps = await RemoteModeClient(client).get_capabilities()
"""

from loginflow.client.async_client import ApiClient
from loginflow.client.remote import RemoteModeClient
from loginflow.client.users import UsersClient

__all__ = ["ApiClient", "RemoteModeClient", "UsersClient"]
