"""
shared/utils/exceptions.py
Domain error taxonomy. Managers raise these; main.py maps them to HTTP responses.
"""

from typing import Optional


class AppError(Exception):
    """Base class for every error a manager may surface to a caller."""

    status_code: int = 500
    default_detail: str = "An internal server error occurred"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(AppError):
    status_code = 401
    default_detail = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_detail = "Not authorized"


class ValidationError(AppError):
    status_code = 400
    default_detail = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_detail = "Resource already exists"


class PersistenceError(AppError):
    """Store failure. The original error is logged, never returned to the caller."""

    status_code = 500
    default_detail = "A database error occurred"
