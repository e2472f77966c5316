"""Login-mode resolution, credential bootstrap, and login exchanges.

The main entry points are:

- :class:`LoginModeResolver` -- decides how the client logs in, with TTL
  caching, retry, and coalescing of concurrent callers.
- :class:`CredentialSource` -- reads the local credentials artifact.
- :class:`CredentialBootstrapper` -- picks the credentials for internal
  calls at startup.
- :class:`LoginService` -- password and simple-mode login exchanges.

Typical usage::

    resolver = LoginModeResolver(RemoteModeClient(client), session)
    await CredentialBootstrapper(resolver, source, settings, client).bootstrap_credentials()
    await LoginService(client, resolver, session).password_login("ada", "secret")
"""

from loginflow.auth.bootstrap import CredentialBootstrapper
from loginflow.auth.credential_source import CredentialSource
from loginflow.auth.login import LoginService
from loginflow.auth.resolver import LoginModeResolver, derive_mode, fallback_mode

__all__ = [
    "CredentialBootstrapper",
    "CredentialSource",
    "LoginModeResolver",
    "LoginService",
    "derive_mode",
    "fallback_mode",
]
