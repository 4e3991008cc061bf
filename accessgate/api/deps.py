from fastapi import HTTPException, status

from accessgate.core.errors import (
    AuthorizationDeniedError,
    InvalidTransitionError,
    RecordNotFoundError,
)
from accessgate.services.desk import AccessDesk
from accessgate.services.desk import get_desk as _get_desk


def get_desk() -> AccessDesk:
    """Access desk dependency."""
    return _get_desk()


def http_error(exc: Exception) -> HTTPException:
    """Map a core error to the HTTP error returned to the caller."""
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AuthorizationDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
