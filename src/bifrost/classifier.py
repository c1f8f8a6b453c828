"""Classification of request outcomes and dispatch to the notifier.

Two steps, kept apart so each can be tested on its own:

* :func:`classify` is pure: it looks at a
  :class:`~bifrost.client.response.TransportResponse` (or ``None``) and
  returns a :class:`RequestResult` saying whether the request succeeded and,
  if not, which :class:`Notification` it deserves.
* :func:`dispatch` performs the side effect: it calls the one matching
  :class:`~bifrost.notifier.SystemNotifier` method.

Status mapping:

==============  ==========  ==============================
Outcome         Result      Notifier call
==============  ==========  ==============================
no response     failure     ``on_network_error()``
200-299         success     --
401             failure     ``on_unauthorized()``
403             failure     ``on_forbidden()``
>= 500          failure     ``on_server_error(code, body)``
anything else   failure     ``on_api_error(code, body)``
==============  ==========  ==============================
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from bifrost.client.response import TransportResponse
from bifrost.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_NETWORK_ERROR,
    EXIT_SERVER_ERROR,
)
from bifrost.notifier import SystemNotifier


class FailureKind(str, enum.Enum):
    """Why a request failed."""

    TRANSPORT = "transport"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    SERVER = "server"
    API = "api"

    @property
    def exit_code(self) -> int:
        """CLI exit code for this failure kind."""
        return _EXIT_CODES[self]


_EXIT_CODES = {
    FailureKind.TRANSPORT: EXIT_NETWORK_ERROR,
    FailureKind.UNAUTHORIZED: EXIT_AUTH_FAILURE,
    FailureKind.FORBIDDEN: EXIT_AUTH_FAILURE,
    FailureKind.SERVER: EXIT_SERVER_ERROR,
    FailureKind.API: EXIT_API_ERROR,
}


@dataclass(frozen=True)
class Notification:
    """The notifier event a failed request produces.

    ``status_code`` and ``body`` are only set for :attr:`FailureKind.SERVER`
    and :attr:`FailureKind.API`.
    """

    kind: FailureKind
    status_code: Optional[int] = None
    body: Optional[str] = None


@dataclass(frozen=True)
class RequestResult:
    """Tagged outcome of one request.

    Exactly one of :attr:`response` (success) and :attr:`notification`
    (failure) is set.
    """

    response: Optional[TransportResponse] = None
    notification: Optional[Notification] = None

    @property
    def ok(self) -> bool:
        return self.notification is None

    @classmethod
    def success(cls, response: TransportResponse) -> RequestResult:
        return cls(response=response)

    @classmethod
    def failure(cls, notification: Notification) -> RequestResult:
        return cls(notification=notification)


def classify(response: Optional[TransportResponse]) -> RequestResult:
    """Decide whether *response* is a success and which event a failure raises."""
    if response is None:
        return RequestResult.failure(Notification(FailureKind.TRANSPORT))

    status = response.status_code
    if 200 <= status < 300:
        return RequestResult.success(response)
    if status == 401:
        return RequestResult.failure(Notification(FailureKind.UNAUTHORIZED))
    if status == 403:
        return RequestResult.failure(Notification(FailureKind.FORBIDDEN))
    if status >= 500:
        return RequestResult.failure(Notification(FailureKind.SERVER, status, response.body))
    return RequestResult.failure(Notification(FailureKind.API, status, response.body))


def dispatch(result: RequestResult, notifier: SystemNotifier) -> None:
    """Call the notifier method matching *result*. Successes call nothing."""
    notification = result.notification
    if notification is None:
        return

    kind = notification.kind
    if kind is FailureKind.TRANSPORT:
        notifier.on_network_error()
    elif kind is FailureKind.UNAUTHORIZED:
        notifier.on_unauthorized()
    elif kind is FailureKind.FORBIDDEN:
        notifier.on_forbidden()
    elif kind is FailureKind.SERVER:
        notifier.on_server_error(notification.status_code or 0, notification.body)
    else:
        notifier.on_api_error(notification.status_code or 0, notification.body)
