"""Response descriptor passed from the transport to the repository.

:class:`TransportResponse` is the only shape the repository needs from a
network call: a status code and the raw body text. A transport that could not
obtain any response at all (timeout, DNS failure, refused connection) returns
``None`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx


@dataclass(frozen=True)
class TransportResponse:
    """Status code and raw body of one HTTP response.

    Attributes:
        status_code: HTTP status code as returned by the server.
        body: Response body decoded as text. Empty for bodiless responses.
        headers: Response headers (lower-cased names).
    """

    status_code: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        """``True`` for 2xx status codes."""
        return 200 <= self.status_code < 300

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> TransportResponse:
        """Build a descriptor from an :class:`httpx.Response`."""
        return cls(
            status_code=response.status_code,
            body=response.text,
            headers={k.lower(): v for k, v in response.headers.items()},
        )


def coerce_response(response: Any) -> Optional[TransportResponse]:
    """Normalise what a network thunk returned.

    Thunks may return a :class:`TransportResponse`, a raw
    :class:`httpx.Response`, or ``None`` for a transport failure.

    Raises:
        TypeError: For any other return type.
    """
    if response is None or isinstance(response, TransportResponse):
        return response
    if isinstance(response, httpx.Response):
        return TransportResponse.from_httpx(response)
    raise TypeError(
        f"Network call must return TransportResponse, httpx.Response or None, "
        f"got {type(response).__name__}"
    )
