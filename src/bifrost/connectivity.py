"""Connectivity probe consumed by the repository's read path.

The repository reads :attr:`ConnectionChecker.is_connected` once per
``fetch``: online reads go to the network, offline reads fall back to the
disk cache. The value is never cached by the repository, so an
implementation may flip it at any time, e.g. from a platform connectivity
listener.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ConnectionChecker(ABC):
    """Reports whether the network is currently reachable."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """``True`` if requests should be attempted."""


class StaticConnectionChecker(ConnectionChecker):
    """Connectivity flag set explicitly by the application.

    Args:
        connected: Initial state.

    Example::

        checker = StaticConnectionChecker()
        checker.connected = False   # force offline reads from cache
    """

    def __init__(self, connected: bool = True) -> None:
        self.connected = connected

    @property
    def is_connected(self) -> bool:
        return self.connected
