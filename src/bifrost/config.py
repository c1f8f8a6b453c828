"""Settings and profiles for the ``bifrost`` CLI.

Everything here is plain JSON on disk:

* ``<config_dir>/config.json`` -- the :class:`~bifrost.models.GlobalConfig`
  (default profile, cache TTL and namespace, output format).
* ``<config_dir>/profiles/<name>.json`` -- one
  :class:`~bifrost.models.Profile` per API.
* ``<cache_dir>/store/`` -- the :class:`~bifrost.storage.DiskStore` that
  ``bifrost get`` writes through to.

Linux and the BSDs follow the XDG base directories (``$XDG_CONFIG_HOME``,
``$XDG_CACHE_HOME``); other platforms keep everything under ``~/.bifrost/``.

Files are replaced atomically, so an interrupted ``profile add`` never
leaves a truncated profile behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError

from bifrost.exceptions import ConfigError
from bifrost.models import GlobalConfig, Profile

_APP_NAME = "bifrost"

ENV_PROFILE = "BIFROST_PROFILE"
ENV_BASE_URL = "BIFROST_BASE_URL"
ENV_CACHE_TTL = "BIFROST_CACHE_TTL"

_M = TypeVar("_M", bound=BaseModel)


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback: Optional[str] = None) -> Path:
    """Resolve and create one of the application's directories.

    Args:
        xdg_var: XDG environment variable consulted first.
        xdg_default: Directory under ``$HOME`` used when *xdg_var* is unset.
        fallback: Sub-directory of ``~/.bifrost`` on non-XDG platforms.
    """
    if _is_xdg_platform():
        base = Path(os.environ.get(xdg_var) or Path.home() / xdg_default)
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback:
            path = path / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/bifrost`` (``~/.config/bifrost``), or ``~/.bifrost``."""
    return _app_dir("XDG_CONFIG_HOME", ".config")


def get_cache_dir() -> Path:
    """``$XDG_CACHE_HOME/bifrost`` (``~/.cache/bifrost``), or ``~/.bifrost/cache``.

    Safe to delete: it only holds cached responses and crash logs.
    """
    return _app_dir("XDG_CACHE_HOME", ".cache", fallback="cache")


def get_store_dir() -> Path:
    """Directory of the CLI's :class:`~bifrost.storage.DiskStore`."""
    return get_cache_dir() / "store"


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Reading and writing ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* via a sibling temp file and ``os.replace``.

    The temp file is removed if anything fails before the rename.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def _write_model(path: Path, model: BaseModel) -> None:
    _atomic_write(path, json.dumps(model.model_dump(mode="json"), indent=2) + "\n")


def _read_model(path: Path, model: type[_M], label: str) -> _M:
    """Load and validate *path* as *model*.

    Raises:
        ConfigError: The file is not JSON or does not validate.
    """
    try:
        return model.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / "config.json"


def load_global_config() -> GlobalConfig:
    """Return the saved :class:`~bifrost.models.GlobalConfig`, or defaults if none is saved.

    Raises:
        ConfigError: The file exists but is invalid.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    return _read_model(path, GlobalConfig, "global config")


def save_global_config(config: GlobalConfig) -> None:
    _write_model(_global_config_path(), config)


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def _existing_profile_path(name: str) -> Path:
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    return path


def list_profiles() -> list[str]:
    """Names of all saved profiles, sorted."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Load the profile called *name*.

    Raises:
        ConfigError: The profile is missing or invalid.
    """
    return _read_model(_existing_profile_path(name), Profile, f"profile '{name}'")


def save_profile(profile: Profile) -> None:
    """Create or replace ``profiles/<profile.name>.json``."""
    _write_model(_profile_path(profile.name), profile)


def delete_profile(name: str) -> None:
    """Remove a saved profile.

    Raises:
        ConfigError: The profile does not exist.
    """
    _existing_profile_path(name).unlink()


# --- Effective configuration ---


def _env_cache_ttl() -> Optional[int]:
    raw = os.environ.get(ENV_CACHE_TTL)
    if not raw:
        return None
    try:
        ttl = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_CACHE_TTL} must be an integer, got: {raw}") from None
    if ttl < 0:
        raise ConfigError(f"{ENV_CACHE_TTL} must not be negative, got: {ttl}")
    return ttl


def _profile_name(cli_profile: Optional[str], default: Optional[str]) -> Optional[str]:
    """Pick the active profile: flag, then env, then config, then the only one saved."""
    name = cli_profile or os.environ.get(ENV_PROFILE) or default
    if name is None:
        saved = list_profiles()
        if len(saved) == 1:
            name = saved[0]
    return name


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Merge saved settings with environment variables and CLI flags.

    Flags beat ``BIFROST_*`` variables, which beat ``config.json``, which
    beats the model defaults. ``BIFROST_CACHE_TTL`` overrides
    ``cache.ttl_seconds``. A base URL given without any profile produces an
    unsaved ``adhoc`` profile.

    Returns:
        ``(global_config, active_profile_or_None)``. The returned objects
        are not saved back.

    Raises:
        ConfigError: A named profile is missing, a file is invalid, or
            ``BIFROST_CACHE_TTL`` is not a non-negative integer.
    """
    config = load_global_config()

    ttl = _env_cache_ttl()
    if ttl is not None:
        config.cache.ttl_seconds = ttl

    name = _profile_name(cli_profile, config.default_profile)
    profile = load_profile(name) if name is not None else None

    base_url = cli_base_url or os.environ.get(ENV_BASE_URL)
    if base_url:
        if profile is None:
            profile = Profile(name="adhoc", base_url=base_url)
        else:
            profile.base_url = base_url

    return config, profile
