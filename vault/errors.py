"""
Error taxonomy shared by the clients and the operations layer.
"""

from __future__ import annotations

from enum import StrEnum

SERVICE_UNAVAILABLE_MESSAGE = (
    "Service unavailable. Please check your connection or try again later."
)


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    QUOTA_EXCEEDED = "quota_exceeded"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    MALFORMED_INPUT = "malformed_input"


class UpstreamUnavailable(Exception):
    """A remote database or external host call failed."""


class FileHostError(UpstreamUnavailable):
    """The external file host rejected an upload or answered with garbage."""


class RemoteFetchError(Exception):
    """A user-supplied URL could not be fetched (non-success status)."""

    def __init__(self, url: str, status_code: int):
        super().__init__(f"Fetching {url} returned HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class OperationError(Exception):
    """Raised inside an operation to reject the request with a typed reason."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class RemoteFileTooLarge(Exception):
    """A user-supplied URL serves more bytes than the caller allowed."""

    def __init__(self, url: str, max_bytes: int):
        super().__init__(f"{url} exceeds {max_bytes} bytes")
        self.url = url
        self.max_bytes = max_bytes
