"""HTTP transport for bifrost.

:class:`RestAPI` wraps :mod:`httpx` and returns a
:class:`TransportResponse` for every HTTP status, or ``None`` when no
response could be obtained. It is the usual source of the network thunks
handed to :class:`~bifrost.repository.Repository`.

Example::

    from bifrost.client import RestAPI

    api = RestAPI("https://api.example.com")
    response = await api.get("/users")
"""

from bifrost.client.response import TransportResponse, coerce_response
from bifrost.client.rest_api import RestAPI

__all__ = ["RestAPI", "TransportResponse", "coerce_response"]
