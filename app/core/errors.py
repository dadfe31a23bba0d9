"""Application error taxonomy.

Every error carries a client-safe ``message`` and an optional short ``error``
reason. Internal exception text stays in the logs; handlers in ``main.py``
turn these into ``{"message": ..., "error": ...}`` JSON bodies.
"""

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server Error"

    def __init__(self, message: str | None = None, error: str | None = None):
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.error:
            body["error"] = self.error
        return body


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class UserNotProvisioned(AppError):
    """Token is valid but the subject has no local user row yet."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized, user not found"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "User not authorized"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class ExtractionFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Could not process the uploaded file."


class EmptyContent(ExtractionFailed):
    """Extraction succeeded but yielded no text (empty file, image-only PDF)."""


class InvalidGenerationFormat(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to generate quiz."


class GenerationUnavailable(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "AI service failed to generate a response."


class StorageUnavailable(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to download file from storage."


class StorageDeleteFailed(AppError):
    """Blob cleanup failed. Logged by callers, never returned to clients."""
