"""
Error kinds raised by the booking engine.

The engine raises these and never builds HTTP responses itself; the status
code attached to each kind is only used when an error crosses the HTTP
boundary, by the handler registered in main.py.
"""

from typing import Any, Dict, Optional

from fastapi import status


class DomainException(Exception):
    """Base class for every engine error."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code()
        self.details = details or {}
        super().__init__(self.message)

    @classmethod
    def default_code(cls) -> str:
        return cls.__name__.replace("Exception", "")

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationException(DomainException):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def default_code(cls) -> str:
        return "ValidationError"


class UnauthorizedException(DomainException):
    """No usable principal was supplied."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """The principal has no rights over the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    status_code = status.HTTP_404_NOT_FOUND

    @classmethod
    def default_code(cls) -> str:
        return "NotFound"


class InvalidOperationException(DomainException):
    """Legal input that the current state does not allow."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionException(DomainException):
    """Target status is outside the actor's permitted set."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictException(DomainException):
    """Slot already taken or duplicate review."""

    status_code = status.HTTP_409_CONFLICT
