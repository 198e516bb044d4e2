"""Translate core operation results into HTTP errors."""
from fastapi import HTTPException, status

from .schemas import ErrorKind, OperationResult

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.STORAGE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_failure(result: OperationResult) -> OperationResult:
    if not result.success:
        code = ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST)
        raise HTTPException(status_code=code, detail=result.message)
    return result
