"""loginflow -- login-mode resolution and session bootstrap for API clients.

This package decides *how* a client should authenticate against an API
server (password, SSO only, anonymous "simple" login, or not at all),
caches that decision, retries transient failures, falls back to locally
configured credentials, and drives the post-login session bootstrap.

Typical usage::

    from loginflow.config import resolve_settings
    from loginflow.flow import LoginFlow

    async with LoginFlow(resolve_settings()) as flow:
        await flow.start({"redirect": "/projects/42"})
        target = await flow.password_login("ada", "secret")

Modules:
    flow: Component wiring for one API.
    auth: Login-mode resolver, credential bootstrap, login exchanges.
    session: Observable session state, post-login bootstrap, redirects.
    client: Async HTTP client and endpoint groups.
    models: Pydantic models shared across the package.
    config: XDG-aware settings resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
