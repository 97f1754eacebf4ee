from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from incidentio_mcp.core.exceptions import (
    APIException,
    NotFoundError,
    UpstreamError,
    ValidationException,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories reported to callers."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"


class OperationError(BaseModel):
    """Failure detail carried by an unsuccessful OperationResult."""
    kind: ErrorKind
    message: str
    details: Any = None
    status_code: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: APIException) -> "OperationError":
        """Classify an adapter exception into a result error."""
        if isinstance(exc, ValidationException):
            return cls(
                kind=ErrorKind.VALIDATION,
                message=exc.detail,
                details=exc.context or None,
                status_code=exc.status_code,
            )
        if isinstance(exc, NotFoundError):
            return cls(
                kind=ErrorKind.NOT_FOUND,
                message=exc.detail,
                details=exc.context or None,
                status_code=exc.status_code,
            )
        if isinstance(exc, UpstreamError):
            details = exc.payload
            if details is None:
                details = {"message": str(exc.original_exception or exc.detail)}
            return cls(
                kind=ErrorKind.UPSTREAM,
                message=exc.detail,
                details=details,
                status_code=exc.upstream_status,
            )
        return cls(
            kind=ErrorKind.UPSTREAM,
            message=exc.detail,
            details=exc.context or None,
            status_code=exc.status_code,
        )


class OperationResult(BaseModel, Generic[T]):
    """
    Outcome of one adapter operation.

    Exactly one of ``data`` (when ``ok``) or ``error`` (when not ``ok``) is
    meaningful. Surfaces turn this into their own envelope: an HTTP status
    and body, or a tool result with the error flag set.
    """
    ok: bool
    data: Optional[T] = None
    error: Optional[OperationError] = None

    @classmethod
    def success(cls, data: T) -> "OperationResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: OperationError) -> "OperationResult[T]":
        return cls(ok=False, error=error)

    def to_exception(self) -> APIException:
        """Rebuild the adapter exception for a failed result."""
        if self.ok or self.error is None:
            raise ValueError("Successful results carry no exception")

        error = self.error
        context = error.details if isinstance(error.details, dict) else {}
        if error.kind == ErrorKind.VALIDATION:
            return ValidationException(detail=error.message, context=dict(context))
        if error.kind == ErrorKind.NOT_FOUND:
            return NotFoundError(
                resource_type=context.get("resource_type", "resource"),
                resource_id=context.get("resource_id", ""),
                detail=error.message,
                context=dict(context),
            )
        return UpstreamError(
            detail=error.message,
            upstream_status=error.status_code,
            payload=error.details,
        )
