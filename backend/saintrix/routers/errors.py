"""Service exception -> HTTP status translation shared by the routers."""
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from ..services.exceptions import (
    ServiceError, RecordNotFoundError, ConcurrentUpdateError, ExternalServiceError,
)


def to_http(error: Exception) -> HTTPException:
    if isinstance(error, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ConcurrentUpdateError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ExternalServiceError):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, IntegrityError):
        # Constraint rejected the write: missing parent row or duplicate
        return HTTPException(status_code=409, detail="Write rejected by a database constraint")
    if isinstance(error, ValueError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, ServiceError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
