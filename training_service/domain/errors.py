"""Domain failures carrying stable machine-readable codes."""

from __future__ import annotations


class TrainingError(Exception):
    """Base class for failures that map to a caller-visible error code."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(TrainingError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class NoUpdatesError(TrainingError):
    code = "NO_UPDATES"
    status_code = 400
    default_message = "No valid fields to update"


class ClientNotFoundError(TrainingError):
    code = "CLIENT_NOT_FOUND"
    status_code = 404
    default_message = "Client not found"


class InvalidRoleError(TrainingError):
    code = "INVALID_ROLE"
    status_code = 400
    default_message = "Target user must be a client"


class ServiceUnavailableError(TrainingError):
    code = "SERVICE_UNAVAILABLE"
    status_code = 503
    default_message = "Unable to validate client"


class UnauthorizedError(TrainingError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "No token provided"


class InvalidTokenError(TrainingError):
    code = "INVALID_TOKEN"
    status_code = 401
    default_message = "Invalid or expired token"


class ForbiddenError(TrainingError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Insufficient permissions"


class InvalidFieldError(TrainingError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request payload"
