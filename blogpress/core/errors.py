"""
Typed service failures.

Services raise these instead of HTTPException so callers (routers,
scripts, tests) can branch on the kind of failure. main.py maps each
class to its status_code with a single exception handler.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for every failure a service reports to its caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(ServiceError):
    """Missing or malformed input — user-correctable."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request."


class Unauthorized(ServiceError):
    """Missing, invalid, inactive or expired credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid or missing API key."


class Forbidden(ServiceError):
    """Valid credential but insufficient role, permission, ownership or IP."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden."


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."


class TooManyRequests(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Rate limit exceeded."


class StorageError(ServiceError):
    """Underlying persistence failure. Logged by the HTTP layer, never retried."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Storage failure."
