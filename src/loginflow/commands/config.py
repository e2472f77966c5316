"""Config commands -- view and modify the user settings file.

Provides the ``loginflow config`` sub-command group for reading, updating,
and resetting :class:`~loginflow.models.Settings`.
"""

from __future__ import annotations

import typer

from loginflow.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration.

    Example::

        loginflow config show --json
    """
    from loginflow.config import get_config_dir, resolve_settings

    settings = resolve_settings()
    info(f"Config directory: {get_config_dir()}")
    data = settings.model_dump(mode="json")
    if data.get("user_secret"):
        data["user_secret"] = "****"
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting key (dot notation, e.g. 'mode_cache.ttl_seconds')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the current value (bool, int, float
    or str) and the result is validated before saving.

    Raises:
        typer.Exit: With code 2 for an unknown key or an invalid value.

    Example::

        loginflow config set login_fallback error
        loginflow config set mode_cache.persist true
    """
    from loginflow.config import load_settings, save_settings
    from loginflow.models import Settings

    data = load_settings().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    coerced: object
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, (int, float)):
        try:
            coerced = type(current)(value)
        except ValueError:
            error(f"Expected a number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        settings = Settings.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(settings)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the settings file to defaults."""
    from loginflow.config import save_settings
    from loginflow.models import Settings

    if not force:
        if not typer.confirm("Reset all settings to defaults?"):
            info("Cancelled.")
            raise typer.Exit()

    save_settings(Settings())
    success("Settings reset to defaults.")
