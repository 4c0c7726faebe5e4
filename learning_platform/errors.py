"""Application error types.

Services raise these; the exception handler in ``main`` renders every one of
them as ``{"error": message}`` with the matching status code. They are
``HTTPException`` subclasses, so FastAPI still answers with the right status
if that handler is missing.
"""

from fastapi import HTTPException


class AppError(HTTPException):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        super().__init__(status_code=status_code or type(self).status_code, detail=self.message)


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class DuplicateSubmission(ValidationError):
    default_message = "Exercise already submitted"
