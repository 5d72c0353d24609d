"""Service-level exceptions mapped to HTTP responses by the app's error handler."""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str, *, error: str | None = None):
        super().__init__(message)
        self.message = message
        if error:
            self.error = error


class BadRequestError(ServiceError):
    status_code = 400
    error = "Bad Request"


class NotFoundError(ServiceError):
    status_code = 404
    error = "Not Found"


class AiServiceError(ServiceError):
    """Upstream model call failed or returned something unusable."""

    status_code = 500
    error = "AI Service Error"
