"""
Custom exceptions and error handling
"""
from typing import Optional, Dict, Any
from fastapi import Request
from fastapi.responses import JSONResponse
from logging_config import get_logger

logger = get_logger(__name__)


class ParkSmartException(Exception):
    """Base exception for application"""
    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class CatalogConfigurationError(ParkSmartException):
    """Rate catalog is inconsistent; raised before the engine serves requests"""
    def __init__(self, entry: str, problems: list):
        super().__init__(
            f"Invalid rate catalog entry {entry}: {'; '.join(problems)}",
            500,
            {"entry": entry, "problems": list(problems)}
        )


class ExternalAPIException(ParkSmartException):
    """External API call failed"""
    def __init__(self, service: str, message: str, status_code: int = 503):
        super().__init__(
            f"External service error ({service}): {message}",
            status_code,
            {"service": service}
        )


class ValidationException(ParkSmartException):
    """Input validation failed"""
    def __init__(self, field: str, message: str):
        super().__init__(
            f"Validation error for {field}: {message}",
            422,
            {"field": field}
        )


async def exception_handler(request: Request, exc: ParkSmartException) -> JSONResponse:
    """Handle custom exceptions"""

    logger.error(
        f"Exception occurred: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "details": exc.details,
            "path": request.url.path,
            "method": request.method
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.message,
                "type": exc.__class__.__name__,
                "details": exc.details
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""

    logger.exception(
        "Unexpected exception occurred",
        extra={
            "path": request.url.path,
            "method": request.method
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "An unexpected error occurred",
                "type": "InternalServerError"
            }
        }
    )
