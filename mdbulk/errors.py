"""Exceptions raised by mdbulk commands and services."""
from typing import Any, Optional


class MdBulkError(RuntimeError):
    """Base class for every error the CLI reports to the user."""


class AuthenticationError(MdBulkError):
    """Raised when the OneDrive client has no usable credentials."""


class PreconditionError(MdBulkError):
    """Raised when a command cannot start (missing root, existing target, ...)."""


class MalformedInputError(MdBulkError):
    """Raised when an input table cannot be read."""


class OneDriveError(MdBulkError):
    """Raised when Microsoft Graph answers with an HTTP error."""

    def __init__(self, status_code: int, method: str, url: str, detail: Optional[Any] = None):
        self.status_code = status_code
        self.method = method
        self.url = url
        self.detail = detail
        super().__init__(f"OneDrive error {status_code} on {method} {url}: {detail}")
