"""Profile commands -- register the APIs ``bifrost get`` can read from.

A profile is a base URL plus default headers, stored as
``profiles/<name>.json`` under the config directory.
"""

from __future__ import annotations

from typing import Optional

import typer

from bifrost.exit_codes import EXIT_INVALID_USAGE
from bifrost.output import error, format_response, print_table, success


profile_app = typer.Typer(no_args_is_help=True)


def _parse_headers(values: list[str]) -> dict[str, str]:
    """Parse ``Name: value`` pairs given on the command line."""
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Header must look like 'Name: value', got: {raw}")
        headers[name.strip()] = value.strip()
    return headers


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    base_url: str = typer.Argument(help="API base URL, e.g. https://api.example.com/v1."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Default header as 'Name: value' (repeatable)."
    ),
    timeout: int = typer.Option(30, "--timeout", help="Request timeout in seconds."),
    make_default: bool = typer.Option(
        False, "--default", help="Make this the default profile."
    ),
) -> None:
    """Create or replace a profile.

    Example::

        bifrost profile add asgard https://api.asgard.example -H "Authorization: Bearer xyz"
    """
    from bifrost.config import load_global_config, save_global_config, save_profile
    from bifrost.models import Profile, RequestConfig

    try:
        headers = _parse_headers(header or [])
    except ValueError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_profile(
        Profile(
            name=name,
            base_url=base_url,
            headers=headers,
            request=RequestConfig(timeout=timeout),
        )
    )
    if make_default:
        config = load_global_config()
        config.default_profile = name
        save_global_config(config)
    success(f"Saved profile '{name}'.")


@profile_app.command("list")
def profile_list() -> None:
    """List saved profiles."""
    from bifrost.config import list_profiles, load_global_config, load_profile

    default = load_global_config().default_profile
    rows = []
    for name in list_profiles():
        profile = load_profile(name)
        rows.append([name, profile.base_url, "*" if name == default else ""])
    print_table(["name", "base_url", "default"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Show a profile as JSON."""
    from bifrost.config import load_profile

    format_response(load_profile(name).model_dump(mode="json"))


@profile_app.command("remove")
def profile_remove(name: str = typer.Argument(help="Profile name.")) -> None:
    """Delete a profile."""
    from bifrost.config import delete_profile

    delete_profile(name)
    success(f"Removed profile '{name}'.")
