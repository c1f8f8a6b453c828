"""Notification sink for request failures.

The repository calls exactly one :class:`SystemNotifier` method for every
failed request, synchronously, before returning ``None`` to its caller. That
makes the notifier the single place where an application reacts to failures
globally: showing a "no connection" banner, sending the user back to the
login screen on 401, and so on.

Example::

    class AppNotifier(SystemNotifier):
        def on_network_error(self) -> None:
            banner.show("No internet connection")

        def on_unauthorized(self) -> None:
            session.logout()

        def on_forbidden(self) -> None:
            banner.show("Access denied")

        def on_server_error(self, status_code: int, body: Optional[str]) -> None:
            banner.show("Server error. Please try again later.")

        def on_api_error(self, status_code: int, body: Optional[str]) -> None:
            banner.show(f"Error: {status_code}")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class SystemNotifier(ABC):
    """Receives one event per failed request."""

    @abstractmethod
    def on_network_error(self) -> None:
        """No response was obtained (offline, timeout, refused connection)."""

    @abstractmethod
    def on_unauthorized(self) -> None:
        """The server answered 401. Typically triggers re-authentication."""

    @abstractmethod
    def on_forbidden(self) -> None:
        """The server answered 403."""

    @abstractmethod
    def on_server_error(self, status_code: int, body: Optional[str]) -> None:
        """The server answered with a 5xx status."""

    @abstractmethod
    def on_api_error(self, status_code: int, body: Optional[str]) -> None:
        """Any other non-2xx status (400, 404, 409, ...)."""


class NoOpNotifier(SystemNotifier):
    """Notifier that ignores every event."""

    def on_network_error(self) -> None:
        pass

    def on_unauthorized(self) -> None:
        pass

    def on_forbidden(self) -> None:
        pass

    def on_server_error(self, status_code: int, body: Optional[str]) -> None:
        pass

    def on_api_error(self, status_code: int, body: Optional[str]) -> None:
        pass


class LoggingNotifier(SystemNotifier):
    """Notifier that writes every event to a :mod:`logging` logger.

    Args:
        log: Logger to write to. Defaults to this module's logger.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def on_network_error(self) -> None:
        self._log.warning("Network error: no response received")

    def on_unauthorized(self) -> None:
        self._log.warning("Unauthorized (401)")

    def on_forbidden(self) -> None:
        self._log.warning("Forbidden (403)")

    def on_server_error(self, status_code: int, body: Optional[str]) -> None:
        self._log.error("Server error %d: %s", status_code, body)

    def on_api_error(self, status_code: int, body: Optional[str]) -> None:
        self._log.warning("API error %d: %s", status_code, body)
