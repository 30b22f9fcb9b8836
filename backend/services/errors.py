from __future__ import annotations


class DiaryError(Exception):
    """Base class for errors that map onto a client-facing HTTP status."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DiaryError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(DiaryError):
    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentialsError(AuthenticationError):
    """Same message for unknown email and wrong password."""

    default_message = "Invalid credentials"

    def __init__(self):
        super().__init__(self.default_message)


class DuplicateEmailError(DiaryError):
    status_code = 409
    default_message = "Email already registered"


class ForbiddenError(DiaryError):
    status_code = 403
    default_message = "Not authorized"


class NotFoundError(DiaryError):
    status_code = 404
    default_message = "Not found"


class PayloadTooLargeError(DiaryError):
    status_code = 413
    default_message = "File too large"


class UnsupportedMediaTypeError(DiaryError):
    status_code = 415
    default_message = "Invalid file type"


class ExternalServiceError(DiaryError):
    status_code = 502
    default_message = "External service unavailable"
