"""Error taxonomy shared by the chat services, REST handlers and the realtime gateway.

Every failure raised by the service layer is a :class:`ChatError` carrying an
HTTP-style status code, a machine-readable ``code`` and a human message. The
REST layer renders these as ``{"detail": ..., "code": ...}`` envelopes and the
gateway turns them into ``error`` events.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

__all__ = [
    "AuthenticationError",
    "AuthenticationFailed",
    "AuthorizationError",
    "ChatError",
    "ConflictError",
    "Forbidden",
    "InternalError",
    "InvalidContent",
    "InvalidSelfMessage",
    "MessageNotFound",
    "NotFoundError",
    "ReceiverNotFound",
    "ValidationError",
    "describe_validation_errors",
]


class ChatError(Exception):
    """Base exception for chat failures surfaced to a calling boundary."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        """Return the wire representation used by REST and realtime errors."""
        return {"detail": self.message, "code": self.code}


class ValidationError(ChatError):
    """Malformed or missing input."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class AuthenticationError(ChatError):
    """Missing or invalid credential."""

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Could not validate credentials"


class AuthorizationError(ChatError):
    """Authenticated caller is not entitled to the operation."""

    status_code = 403
    code = "FORBIDDEN"
    default_message = "Operation not permitted"


class NotFoundError(ChatError):
    """Referenced entity does not exist."""

    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(ChatError):
    """Request conflicts with current state."""

    status_code = 409
    code = "CONFLICT"
    default_message = "Conflicting request"


class InternalError(ChatError):
    """Storage or collaborator failure."""


class InvalidSelfMessage(ValidationError):
    code = "INVALID_SELF_MESSAGE"
    default_message = "Cannot send a message to yourself"


class InvalidContent(ValidationError):
    code = "INVALID_CONTENT"
    default_message = "Message content is invalid"


class ReceiverNotFound(NotFoundError):
    code = "RECEIVER_NOT_FOUND"
    default_message = "Receiver not found"


class MessageNotFound(NotFoundError):
    code = "MESSAGE_NOT_FOUND"
    default_message = "Message not found"


class Forbidden(AuthorizationError):
    default_message = "Only the sender may delete this message"


class AuthenticationFailed(AuthenticationError):
    code = "AUTHENTICATION_FAILED"


def describe_validation_errors(errors: Sequence[Mapping[str, Any]]) -> str:
    """Render pydantic-style error dicts as a short human message."""
    if not errors:
        return ValidationError.default_message
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg", ValidationError.default_message))
    return f"{location}: {message}" if location else message
