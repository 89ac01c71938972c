"""
Error taxonomy for the admin client.

Only two conditions are classified by this package: a stale client version on
write and rejected credentials. Everything else raised by the underlying
exchange is an ``httpx.HTTPError`` and reaches the caller unchanged.
"""

from typing import Optional

import httpx

# Any failure of the underlying exchange (network errors, non-2xx statuses).
TransportError = httpx.HTTPError


class AdminClientError(Exception):
    """Base class for conditions classified by the admin client."""


class VersionConflict(AdminClientError):
    """
    The server rejected a write because the client's known version is stale.

    Re-read the target entity before retrying; resending the same payload
    will keep conflicting.
    """

    def __init__(self, known_version: str, server_version: Optional[str] = None):
        self.known_version = known_version
        self.server_version = server_version
        message = f"Client version conflict (client at {known_version}"
        if server_version is not None:
            message += f", server at {server_version}"
        super().__init__(message + ")")


class Unauthorized(AdminClientError):
    """Credentials were rejected or have expired; re-authenticate."""

    def __init__(self, status_code: int = 401, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        message = f"Unauthorized ({status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
