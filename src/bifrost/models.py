"""Canonical Pydantic models shared across bifrost modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`RequestConfig`, :class:`OutputConfig`,
    :class:`GlobalConfig`, and :class:`Profile`.

**Cache models** -- produced by the tiered cache:
    :class:`CacheEntry`.

All models use Pydantic v2. :class:`Profile` accepts unknown keys
(``extra="allow"``) so that application-specific settings survive a
load/save round trip.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Config ---


class CacheConfig(BaseModel):
    """Response cache settings stored in :class:`GlobalConfig`.

    ``ttl_seconds`` is only the default: every ``fetch`` call may pass its
    own ``cache_duration``.
    """

    enabled: bool = Field(default=True, description="Enable the disk cache tier")
    ttl_seconds: int = Field(
        default=3600, ge=0, description="Default cache TTL in seconds"
    )
    namespace: str = Field(
        default="bifrost_cache",
        min_length=1,
        description="Key prefix reserved for cache entries in the backing store",
    )
    use_memory_cache: bool = Field(
        default=True, description="Keep deserialized values in process memory"
    )

    @property
    def ttl(self) -> timedelta:
        """The default TTL as a :class:`~datetime.timedelta`."""
        return timedelta(seconds=self.ttl_seconds)


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every call in a profile."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/bifrost/config.json``.

    Loaded and saved by :func:`~bifrost.config.load_global_config` and
    :func:`~bifrost.config.save_global_config`. See
    :func:`~bifrost.config.resolve_config` for the precedence chain.
    """

    default_profile: Optional[str] = None
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """One remote API the CLI can talk to.

    Stored as ``profiles/<name>.json`` under the config directory and
    turned into a :class:`~bifrost.client.RestAPI` by the ``get`` command.

    Example::

        Profile(
            name="asgard",
            base_url="https://api.asgard.example",
            headers={"Authorization": "Bearer ..."},
        )
    """

    model_config = ConfigDict(extra="allow")

    name: str
    base_url: str = Field(description="Scheme and host every path is appended to")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    shortname: Optional[str] = Field(
        default=None, description="Short label used in log lines (defaults to name)"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Cache ---


class CacheEntry(BaseModel):
    """One cached response body together with its absolute expiry.

    Entries are immutable: a refresh writes a new body/expiry pair rather
    than touching the old one.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    body: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """Return ``True`` while *now* is strictly before :attr:`expires_at`."""
        return now < self.expires_at
