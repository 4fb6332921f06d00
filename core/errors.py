"""Domain error taxonomy.

Services raise these; the API layer maps them to HTTP responses via
``apps.api.errors``. ``ConflictError`` is internal to match formation and is
consumed by its retry loop.
"""


class AppError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code = 500

    def __init__(self, message: str = "Internal Server Error") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Uniqueness conflict while forming a match for a pair."""

    status_code = 409
