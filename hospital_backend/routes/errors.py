from fastapi import HTTPException, status

from hospital_backend.scheduling.errors import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)

STATUS_CODES = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DatabaseError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(error: SchedulingError) -> HTTPException:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(
                status_code=status_code,
                detail={'reason': error.reason.value, 'message': error.message},
            )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)
