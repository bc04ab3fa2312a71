"""
Service-layer exceptions

Services raise these instead of HTTPException so they stay usable outside
a request. The API layer turns them into HTTP responses via status_code.
"""
from typing import Any, Optional


class ServiceError(Exception):
    """Base error carrying the HTTP status the API layer should answer with"""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_detail(self) -> dict:
        detail = {"error": self.message}
        if self.details is not None:
            detail["details"] = self.details
        return detail


class ValidationFailed(ServiceError):
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class ConfigurationError(ServiceError):
    status_code = 500


class DatabaseNotConfiguredError(ConfigurationError):
    def __init__(self, message: str = "Database not configured"):
        super().__init__(message)
