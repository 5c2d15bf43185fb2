"""
Exception hierarchy for the booking client.

Every failure that crosses a component boundary is one of these types.
Local failures (validation, missing token, role gate) are raised before any
network call; remote failures are mapped from HTTP status codes by
StudioAPIClient.
"""

from typing import Optional


class StudioBookingError(Exception):
    """
    Base exception for all booking client errors.

    Attributes:
        message: Detailed message (server text where one was provided)
        status_code: HTTP status code for remote failures, None for local ones
        operation: Client operation that failed (e.g. "create_booking")
    """

    default_user_message: Optional[str] = None

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.operation = operation

    @property
    def user_message(self) -> str:
        """Text suitable for rendering to an end user."""
        return self.default_user_message or self.message

    @property
    def is_remote(self) -> bool:
        return self.status_code is not None


class ValidationError(StudioBookingError):
    """
    Raised when a required field is missing or malformed.

    Also used for HTTP 400/422 responses, whose message is shown verbatim
    (e.g. "Cannot delete booking with status 'approved'").
    """


class AuthRequired(StudioBookingError):
    """
    Raised when no auth token is present, or the server answered 401.

    A missing token is a hard precondition failure and is never retried.
    """

    LOCAL_MESSAGE = "Please log in to continue."

    def __init__(
        self,
        message: str = LOCAL_MESSAGE,
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code, operation)


class PermissionDenied(StudioBookingError):
    """Raised when the role gate rejects a call, or the server answered 403."""

    default_user_message = "You do not have permission to perform this action."

    def __init__(
        self,
        message: str = "Admin access required",
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code, operation)


class NotFoundError(StudioBookingError):
    """Raised when the server answered 404."""


class ServerError(StudioBookingError):
    """Raised for 5xx responses, unexpected statuses and undecodable bodies."""

    default_user_message = "Something went wrong on our side. Please try again later."


class NetworkError(StudioBookingError):
    """Raised when the request never completed (connection failure, timeout)."""

    default_user_message = (
        "Unable to reach the server. Please check your connection and try again."
    )


class StorageError(StudioBookingError):
    """Raised when a session storage backend cannot read or write the session pair."""
