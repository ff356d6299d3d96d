"""Mapping from lifecycle error kinds to HTTP responses."""

from fastapi import status

from src.rotation.core.exceptions import RotationHTTPException
from src.rotation.services.results import RotationError

ERROR_STATUS: dict[RotationError, int] = {
    RotationError.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RotationError.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    RotationError.ALREADY_RESPONDED: status.HTTP_409_CONFLICT,
    RotationError.DEADLINE_PASSED: status.HTTP_410_GONE,
    RotationError.CONFLICT: status.HTTP_409_CONFLICT,
    RotationError.TRANSIENT_STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    RotationError.INVALID_STATE: status.HTTP_409_CONFLICT,
}


def rotation_http_error(error: RotationError, detail: str | None = None) -> RotationHTTPException:
    return RotationHTTPException(
        status_code=ERROR_STATUS[error],
        code=error.value,
        detail=detail or error.message,
    )
