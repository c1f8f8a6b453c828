"""``bifrost config`` -- inspect and edit ``config.json``."""

from __future__ import annotations

from typing import Any

import typer

from bifrost.exit_codes import EXIT_INVALID_USAGE
from bifrost.output import error, format_response, info, success

config_app = typer.Typer(no_args_is_help=True)

_TRUTHY = {"true", "1", "yes", "on"}


def _fail(message: str) -> typer.Exit:
    error(message)
    return typer.Exit(code=EXIT_INVALID_USAGE)


def _parent_of(data: dict[str, Any], dotted: str) -> tuple[dict[str, Any], str]:
    """Walk *dotted* through nested dicts; return the innermost dict and the leaf name."""
    *parents, leaf = dotted.split(".")
    node = data
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            raise _fail(f"Invalid config key: {dotted}")
        node = child
    if leaf not in node:
        raise _fail(f"Unknown config key: {dotted}")
    return node, leaf


def _coerce(current: Any, raw: str, dotted: str) -> Any:
    """Convert *raw* to the type of the value it replaces."""
    if isinstance(current, bool):
        return raw.lower() in _TRUTHY
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError:
            raise _fail(f"Expected integer for {dotted}, got: {raw}") from None
    return raw


@config_app.command("show")
def config_show() -> None:
    """Print the effective global configuration.

    Example::

        bifrost --json config show
    """
    from bifrost.config import get_config_dir, load_global_config

    info(f"Config directory: {get_config_dir()}")
    format_response(load_global_config().model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. 'cache.ttl_seconds'."),
    value: str = typer.Argument(help="New value."),
) -> None:
    """Change one setting.

    The value takes the type of the setting it replaces, and the whole
    config is validated again before it is written.

    Example::

        bifrost config set default_profile asgard
        bifrost config set cache.ttl_seconds 600
        bifrost config set cache.use_memory_cache false
    """
    from pydantic import ValidationError

    from bifrost.config import load_global_config, save_global_config
    from bifrost.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")
    node, leaf = _parent_of(data, key)
    node[leaf] = _coerce(node[leaf], value, key)

    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise _fail(f"Validation error: {exc}") from None

    save_global_config(updated)
    success(f"Set {key} = {node[leaf]}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Overwrite ``config.json`` with the defaults."""
    from bifrost.config import save_global_config
    from bifrost.models import GlobalConfig

    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
