from fastapi import status


class AppError(Exception):
    """Error surfaced to the client as ``{"detail": message}`` with ``status_code``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class TokenInvalid(Unauthenticated):
    pass


class TokenExpired(Unauthenticated):
    pass


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateEmail(AppError):
    status_code = status.HTTP_409_CONFLICT


class NotifierError(Exception):
    """Mail transport failure. Never reaches a request handler."""
