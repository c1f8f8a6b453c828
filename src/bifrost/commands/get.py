"""Get command -- read an API endpoint through the caching repository.

``bifrost get /users/1`` behaves exactly like a
:meth:`~bifrost.repository.Repository.fetch` call in application code: the
response is written through to the on-disk cache, and with ``--offline``
the cached copy is served instead of touching the network. Failures are
reported on stderr and mapped to an exit code
(:mod:`bifrost.exit_codes`).
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any, Optional

import typer

from bifrost.classifier import FailureKind
from bifrost.exit_codes import EXIT_DESERIALIZATION_ERROR, EXIT_INVALID_USAGE
from bifrost.notifier import SystemNotifier
from bifrost.output import error, format_response


class CliNotifier(SystemNotifier):
    """Prints request failures on stderr and remembers the last one."""

    def __init__(self) -> None:
        self.last_failure: Optional[FailureKind] = None

    @property
    def exit_code(self) -> Optional[int]:
        """Exit code of the last failure, or ``None`` if nothing failed."""
        return self.last_failure.exit_code if self.last_failure else None

    def on_network_error(self) -> None:
        self.last_failure = FailureKind.TRANSPORT
        error("Network error: no response (offline, or nothing cached for this key).")

    def on_unauthorized(self) -> None:
        self.last_failure = FailureKind.UNAUTHORIZED
        error("HTTP 401: unauthorized. Check the profile's credentials.")

    def on_forbidden(self) -> None:
        self.last_failure = FailureKind.FORBIDDEN
        error("HTTP 403: forbidden.")

    def on_server_error(self, status_code: int, body: Optional[str]) -> None:
        self.last_failure = FailureKind.SERVER
        error(f"HTTP {status_code}: server error. {_preview(body)}".rstrip())

    def on_api_error(self, status_code: int, body: Optional[str]) -> None:
        self.last_failure = FailureKind.API
        error(f"HTTP {status_code}. {_preview(body)}".rstrip())


def _preview(body: Optional[str], limit: int = 200) -> str:
    if not body:
        return ""
    return body if len(body) <= limit else f"{body[:limit]}..."


def get_command(
    ctx: typer.Context,
    path: str = typer.Argument(help="Endpoint path, e.g. /users/1."),
    key: Optional[str] = typer.Option(
        None, "--key", "-k", help="Cache key (default: '<profile>:<path>')."
    ),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", min=0, help="Cache TTL in seconds (default from config)."
    ),
    as_list: bool = typer.Option(
        False, "--list", "-l", help="Expect a JSON array of objects."
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Serve from the disk cache without calling the API."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Neither read nor write the disk cache."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Override the profile's base URL."
    ),
) -> None:
    """Fetch PATH from the active profile's API and print the JSON payload.

    Example::

        bifrost get /users/1
        bifrost get /users --list --ttl 600
        bifrost get /users/1 --offline
    """
    from bifrost.client import RestAPI
    from bifrost.config import get_store_dir, resolve_config
    from bifrost.connectivity import StaticConnectionChecker
    from bifrost.repository import Repository
    from bifrost.storage import DiskStore

    profile_name = ctx.obj.get("profile") if ctx.obj else None
    config, profile = resolve_config(cli_profile=profile_name, cli_base_url=base_url)
    if profile is None:
        error("No profile configured. Add one with 'bifrost profile add NAME BASE_URL'.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    notifier = CliNotifier()
    api = RestAPI.from_profile(profile)
    store = DiskStore(get_store_dir())
    try:
        repo = Repository(
            store=store,
            notifier=notifier,
            connection_checker=StaticConnectionChecker(connected=not offline),
            config=config.cache,
            enable_caching=config.cache.enabled and not no_cache,
        )
        fetch = repo.fetch_list if as_list else repo.fetch
        result: Any = asyncio.run(
            fetch(
                api_request=lambda: api.get(path),
                from_json=dict,
                endpoint=path,
                cache_key=key or f"{profile.name}:{path}",
                cache_duration=timedelta(seconds=ttl) if ttl is not None else None,
                use_memory_cache=False,
            )
        )
    finally:
        store.close()

    if result is None:
        if notifier.exit_code is None:
            error("Response could not be decoded as the expected JSON shape.")
        raise typer.Exit(code=notifier.exit_code or EXIT_DESERIALIZATION_ERROR)

    format_response(result)
