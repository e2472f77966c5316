"""Session commands -- resolve the login mode, log in, and compute login URLs.

Each command builds a :class:`~loginflow.flow.LoginFlow` from the effective
settings, runs one operation, and prints its result on stdout.

Typical workflow::

    loginflow mode                    # password / simple / ssoOnly / error
    loginflow login ada -p secret     # prints the post-login target
    loginflow redirect "/projects/42?tab=info"
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import typer

from loginflow.exceptions import InvalidUsageError, ModeResolutionError
from loginflow.flow import LoginFlow
from loginflow.models import LoginMode, Settings
from loginflow.output import OutputNotifier, debug, format_response, print_data, print_table, success


def _settings(ctx: typer.Context) -> Settings:
    from loginflow.config import resolve_settings

    overrides: dict[str, Any] = {}
    if ctx.obj and ctx.obj.get("api_base_url"):
        overrides["api_base_url"] = ctx.obj["api_base_url"]
    return resolve_settings(overrides)


def mode_command(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Ignore the cached mode."),
) -> None:
    """Resolve and print the login mode."""
    settings = _settings(ctx)

    async def _run() -> LoginMode:
        async with LoginFlow(settings, notifier=OutputNotifier()) as flow:
            return await flow.login_mode(force)

    mode = asyncio.run(_run())
    print_data(mode.value)


def login_command(
    ctx: typer.Context,
    name: str = typer.Argument(help="User name (password mode) or display name (simple mode)."),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Password, required in password mode."
    ),
    redirect: Optional[str] = typer.Option(
        None, "--redirect", help="Page to return to after login."
    ),
) -> None:
    """Log in and print the page to navigate to.

    Raises:
        InvalidUsageError: If the password is missing in password mode or
            the server only allows SSO.
        ModeResolutionError: If no login method is available.
    """
    settings = _settings(ctx)

    async def _run() -> str:
        async with LoginFlow(settings, notifier=OutputNotifier()) as flow:
            params = {"redirect": redirect} if redirect else {}
            await flow.start(params)
            mode = await flow.login_mode()
            debug(f"Login mode: {mode.value}")

            if mode is LoginMode.PASSWORD:
                if password is None:
                    password_value = typer.prompt("Password", hide_input=True)
                else:
                    password_value = password
                target = await flow.password_login(name, password_value)
            elif mode is LoginMode.SIMPLE:
                target = await flow.simple_login(name)
            elif mode is LoginMode.SSO_ONLY:
                raise InvalidUsageError("This server only accepts SSO login; use a browser")
            elif mode is LoginMode.TENANT_INPUT:
                raise InvalidUsageError("This server requires a tenant to be selected first")
            else:
                raise ModeResolutionError("No login method is available")
            return target.url

    url = asyncio.run(_run())
    success(f'Logged in as "{name}".')
    print_data(url)


def users_command(ctx: typer.Context) -> None:
    """List the users available for simple-mode login."""
    settings = _settings(ctx)

    async def _run() -> list[list[str]]:
        async with LoginFlow(settings, notifier=OutputNotifier()) as flow:
            await flow.start()
            return [[u.id, u.name] for u in await flow.users()]

    rows = asyncio.run(_run())
    print_table(["id", "name"], rows, title="Users")


def redirect_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Current path, optionally with a query string."),
) -> None:
    """Print the login URL for a user who was on PATH when their session expired."""
    from loginflow.session.redirect import RedirectGuard

    settings = _settings(ctx)
    print_data(RedirectGuard(settings.base_path).handle_unauthorized(path))


def logout_command(
    ctx: typer.Context,
    path: str = typer.Argument("", help="Current path to return to after the next login."),
) -> None:
    """Forget the cached login mode and print the login route."""
    settings = _settings(ctx)

    async def _run() -> str:
        async with LoginFlow(settings) as flow:
            return flow.logout(path)

    print_data(asyncio.run(_run()))


def status_command(ctx: typer.Context) -> None:
    """Show the login mode and whether the server considers the caller authenticated."""
    settings = _settings(ctx)

    async def _run() -> dict[str, Any]:
        async with LoginFlow(settings, notifier=OutputNotifier()) as flow:
            mode = await flow.login_mode(force=True)
            return {
                "api_base_url": settings.api_base_url,
                "mode": mode.value,
                "login_allowed": mode.allows_login,
                "authenticated": flow.session.authenticated,
                "fallback": flow.resolver.last_resolution_failed,
            }

    format_response(asyncio.run(_run()))
