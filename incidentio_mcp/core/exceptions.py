from fastapi import status
from typing import Any, Dict, Optional, Union


class APIException(Exception):
    """
    Base exception for adapter errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        code: str = "internal_error",
        context: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.detail = detail
        self.code = code
        self.context = context or {}
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for consistent response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.detail,
                "status_code": self.status_code,
                "context": self.context
            }
        }


class ConfigurationError(APIException):
    """Exception raised when required process configuration is missing or invalid."""

    def __init__(
        self,
        detail: str = "Invalid configuration",
        code: str = "configuration_error",
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            code=code,
            context=context
        )


class UpstreamError(APIException):
    """
    Exception raised when an incident.io API call fails.

    Carries the upstream status code (when the failure was an HTTP response)
    and the upstream error payload verbatim.
    """

    def __init__(
        self,
        detail: str = "incident.io API request failed",
        code: str = "upstream_error",
        upstream_status: Optional[int] = None,
        payload: Any = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        merged_context: Dict[str, Any] = {}
        if upstream_status is not None:
            merged_context["upstream_status"] = upstream_status
        if payload is not None:
            merged_context["details"] = payload
        if context:
            merged_context.update(context)

        super().__init__(
            status_code=upstream_status or status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            code=code,
            context=merged_context
        )
        self.upstream_status = upstream_status
        self.payload = payload
        self.original_exception = original_exception

        if original_exception and "original_error" not in self.context:
            self.context["original_error"] = str(original_exception)


class ValidationException(APIException):
    """Exception raised when request data fails validation."""

    def __init__(
        self,
        detail: str = "Validation error",
        code: str = "validation_error",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        merged_context = {"field": field} if field else {}
        if context:
            merged_context.update(context)

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code=code,
            context=merged_context
        )


class NotFoundError(APIException):
    """Exception raised when a requested resource is not found upstream."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Union[str, int],
        detail: Optional[str] = None,
        code: str = "not_found_error",
        context: Optional[Dict[str, Any]] = None
    ):
        if detail is None:
            detail = f"{resource_type} with id '{resource_id}' not found"

        merged_context = {
            "resource_type": resource_type,
            "resource_id": str(resource_id)
        }
        if context:
            merged_context.update(context)

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            code=code,
            context=merged_context
        )
