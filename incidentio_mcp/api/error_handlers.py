from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from incidentio_mcp.core.exceptions import (
    APIException,
    NotFoundError,
    UpstreamError,
    ValidationException,
)
from incidentio_mcp.core.logging import correlation_id, get_logger

# Initialize logger
logger = get_logger(__name__)

SENSITIVE_KEYS = {"api_key", "authorization", "auth_token", "token"}


def redact(context: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``context`` with credential-like keys masked."""
    safe_context = {}
    for key, value in context.items():
        if key.lower() in SENSITIVE_KEYS:
            safe_context[key] = "[REDACTED]"
        elif isinstance(value, dict):
            safe_context[key] = redact(value)
        else:
            safe_context[key] = value
    return safe_context


async def handle_api_exception(request: Request, exc: APIException) -> JSONResponse:
    """
    Handle APIException instances.

    Args:
        request: FastAPI request object
        exc: APIException instance

    Returns:
        JSONResponse: Formatted error response
    """
    logger.error(
        f"API Exception: {exc.detail}",
        extra={
            "data": {
                "status_code": exc.status_code,
                "error_code": exc.code,
                "context": exc.context
            }
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def handle_validation_exception(request: Request, exc: ValidationException) -> JSONResponse:
    """
    Handle validation errors.

    Args:
        request: FastAPI request object
        exc: ValidationException instance

    Returns:
        JSONResponse: Formatted validation error response
    """
    logger.warning(
        f"Validation error: {exc.detail}",
        extra={
            "data": {
                "field": exc.context.get("field") if exc.context else None,
                "context": exc.context
            }
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def handle_not_found_exception(request: Request, exc: NotFoundError) -> JSONResponse:
    """
    Handle resource not found errors.

    Args:
        request: FastAPI request object
        exc: NotFoundError instance

    Returns:
        JSONResponse: Formatted not found error response
    """
    logger.info(
        f"Resource not found: {exc.detail}",
        extra={
            "data": {
                "resource_type": exc.context.get("resource_type") if exc.context else None,
                "resource_id": exc.context.get("resource_id") if exc.context else None
            }
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def handle_upstream_exception(request: Request, exc: UpstreamError) -> JSONResponse:
    """
    Handle incident.io API errors.

    Args:
        request: FastAPI request object
        exc: UpstreamError instance

    Returns:
        JSONResponse: Formatted upstream error response
    """
    logger.error(
        f"Upstream error: {exc.detail}",
        extra={
            "data": {
                "upstream_status": exc.upstream_status,
                "context": exc.context
            }
        }
    )

    # Credentials never leave the process, even inside echoed upstream payloads
    safe_context = redact(exc.context) if exc.context else {}

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.detail,
                "status_code": exc.status_code,
                "context": safe_context
            }
        }
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body and query schema errors."""
    errors = []
    for error in exc.errors():
        errors.append({
            "loc": error["loc"],
            "msg": error["msg"],
            "type": error["type"]
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content={
            "error": {
                "code": "request_validation_error",
                "message": "Request validation error",
                "status_code": status.HTTP_422_UNPROCESSABLE_CONTENT,
                "context": {
                    "errors": errors
                }
            }
        }
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Runs in the outermost middleware, after the correlation middleware has
    unwound, so the correlation header is set here.
    """
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    headers = {}
    corr_id = correlation_id.get() or request.headers.get("X-Correlation-ID")
    if corr_id:
        headers["X-Correlation-ID"] = corr_id

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers=headers,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "context": {}
            }
        }
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the exception handlers on the application.

    Starlette dispatches on the most specific class in the exception's MRO,
    so subclasses get their dedicated handler before the APIException one.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(ValidationException, handle_validation_exception)
    app.add_exception_handler(NotFoundError, handle_not_found_exception)
    app.add_exception_handler(UpstreamError, handle_upstream_exception)
    app.add_exception_handler(APIException, handle_api_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_exception)
