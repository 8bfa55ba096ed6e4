# servicehub/common/errors.py
"""Error taxonomy shared by every write operation."""

from enum import Enum
from typing import Optional

from fastapi import HTTPException, status
from pydantic import BaseModel


class ErrorCode(str, Enum):
    AUTH_REQUIRED = "auth_required"
    VALIDATION_ERROR = "validation_error"
    RECIPIENT_UNRESOLVED = "recipient_unresolved"
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"


class ActionResponse(BaseModel):
    """Tagged result returned by every write path instead of raising."""
    success: bool
    message: str
    error_code: Optional[ErrorCode] = None


_STATUS_CODES = {
    ErrorCode.AUTH_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RECIPIENT_UNRESOLVED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TRANSPORT_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(error_code: Optional[ErrorCode]) -> int:
    """Map an error code to the HTTP status a controller should answer with."""
    if error_code is None:
        return status.HTTP_400_BAD_REQUEST
    return _STATUS_CODES[error_code]


def raise_for_failure(result: ActionResponse) -> None:
    """Raise an HTTPException for a failed result; no-op on success."""
    if not result.success:
        raise HTTPException(status_code=status_code_for(result.error_code), detail=result.message)
