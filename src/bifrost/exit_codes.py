"""Numeric process exit codes for the ``bifrost`` command-line tool.

Each failure kind reported by the repository maps to one code so that shell
scripts can tell an expired token from an unreachable host without parsing
stderr.

Example::

    $ bifrost get /users/1
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the API answered 401 or 403
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or configuration keys."""

EXIT_AUTH_FAILURE = 3
"""The API rejected the credentials (HTTP 401) or the access (HTTP 403)."""

EXIT_API_ERROR = 4
"""The API returned a client error other than 401/403 (e.g. 400, 404)."""

EXIT_SERVER_ERROR = 5
"""The API returned an HTTP 5xx server error."""

EXIT_NETWORK_ERROR = 6
"""No response was obtained (offline, timeout, DNS failure, connection refused)."""

EXIT_DESERIALIZATION_ERROR = 7
"""The response payload did not have the expected shape."""
