"""
Error types for the PocketBase client.

Every failure surfaced by the SDK is a :class:`ClientException` (or one of its
subclasses), so callers can catch a single type at the SDK boundary.
"""

from __future__ import annotations

import json
from typing import Any


class ClientException(Exception):
    """Base error for HTTP, transport and application failures."""

    default_message = "Something went wrong while processing your request."

    def __init__(
        self,
        message: str | None = None,
        *,
        url: str | None = None,
        status_code: int = 0,
        response: dict[str, Any] | None = None,
        original_error: Any = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.response: dict[str, Any] = response or {}
        self.original_error = original_error

        if message is None:
            message = self.response.get("message") or self._message_from_original()
        self.message = message or self.default_message

        super().__init__(self.message)

        if isinstance(original_error, BaseException):
            self.__cause__ = original_error

    def _message_from_original(self) -> str | None:
        if isinstance(self.original_error, BaseException):
            return str(self.original_error) or None
        return None

    def to_dict(self) -> dict[str, Any]:
        """Diagnostic mapping of the failure."""
        original = self.original_error
        if isinstance(original, BaseException):
            original = f"{type(original).__name__}: {original}"
        return {
            "url": self.url,
            "status": self.status_code,
            "response": self.response,
            "originalError": original,
        }

    def describe(self) -> str:
        """Human readable multi-line diagnostic."""
        return "ClientException: " + json.dumps(self.to_dict(), indent=2, default=str)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status_code={self.status_code}, url={self.url!r})"
        )


class ValidationError(ClientException):
    """400 - the request data failed validation."""

    default_message = "Failed to process the request."


class AuthenticationError(ClientException):
    """401 - missing or invalid credentials."""

    default_message = "The request requires valid record authorization token."


class AuthorizationError(ClientException):
    """403 - the authenticated identity is not allowed to perform the action."""

    default_message = "You are not allowed to perform this request."


class NotFoundError(ClientException):
    """404 - the requested resource wasn't found."""

    default_message = "The requested resource wasn't found."


class PayloadTooLargeError(ClientException):
    """413 - the request body is too large."""

    default_message = "Request entity too large."


class RateLimitError(ClientException):
    """429 - too many requests."""

    default_message = "Too many requests."


class ServerError(ClientException):
    """5xx - the backend failed to process the request."""

    default_message = "Something went wrong while processing your request."


class NetworkError(ClientException):
    """The request never produced an HTTP response."""

    default_message = "Network request failed."


class TimeoutError(NetworkError):  # noqa: A001
    """The request timed out."""

    default_message = "Request timed out."


class RealtimeConnectionError(ClientException):
    """The realtime stream could not be established or was interrupted."""

    default_message = "Failed to establish realtime connection."


class StreamClosedError(RealtimeConnectionError):
    """The server ended the realtime stream."""

    default_message = "Realtime stream closed by the server."


_STATUS_ERRORS: dict[int, type[ClientException]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    413: PayloadTooLargeError,
    429: RateLimitError,
}


def create_error_from_response(
    status_code: int,
    body: dict[str, Any] | None,
    *,
    url: str | None = None,
    original_error: Any = None,
) -> ClientException:
    """
    Build the error matching an unsuccessful HTTP response.

    Args:
        status_code: HTTP status of the response
        body: Decoded response body (``{"error": raw_text}`` when it wasn't JSON)
        url: Requested URL
        original_error: Raw response text or underlying exception
    """
    if status_code >= 500:
        error_class: type[ClientException] = ServerError
    else:
        error_class = _STATUS_ERRORS.get(status_code, ClientException)

    return error_class(
        url=url,
        status_code=status_code,
        response=body or {},
        original_error=original_error,
    )


def is_client_exception(error: object) -> bool:
    """Check whether an error originates from this SDK."""
    return isinstance(error, ClientException)
