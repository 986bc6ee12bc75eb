"""
ksef/errors.py
Centralized error handling for the judging API.

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

Service layers raise ServiceError subclasses carrying a machine-readable
code; routes translate them into APIError responses. "No data" conditions
(no eligible judges, incomplete scoring, pending ranking) are not errors and
are returned as sentinel values instead.
"""

import logging
import uuid
from typing import Optional, Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_SCORE_INPUT = "INVALID_SCORE_INPUT"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"

    FORBIDDEN = "FORBIDDEN"
    SCOPE_VIOLATION = "SCOPE_VIOLATION"

    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"

    DUPLICATE_ASSIGNMENT = "DUPLICATE_ASSIGNMENT"
    CONFLICT_OF_INTEREST = "CONFLICT_OF_INTEREST"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    NOT_ASSIGNED = "NOT_ASSIGNED"
    DUPLICATE_SCORE_SHEET = "DUPLICATE_SCORE_SHEET"
    SECTION_FULL = "SECTION_FULL"

    INVALID_STATE = "INVALID_STATE"
    STATE_TRANSITION_INVALID = "STATE_TRANSITION_INVALID"
    TERMINAL_LEVEL = "TERMINAL_LEVEL"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class ServiceError(Exception):
    """Base exception for service-layer failures."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        body = ErrorResponse(
            error=self.error,
            message=self.message,
            code=self.code,
            details=self.details or None,
        )
        return body.model_dump(exclude_none=True)

    @classmethod
    def from_service_error(cls, exc: ServiceError) -> "APIError":
        error = ERROR_TITLES.get(exc.status_code, "Bad Request")
        return cls(
            status_code=exc.status_code,
            error=error,
            message=exc.message,
            code=exc.code,
            details=exc.details,
        )


ERROR_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Validation Error",
    500: "Internal Error",
}


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error contract on the application."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        return exc.to_response()

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        logger.info(f"Service error on {request.url.path}: {exc.code} - {exc.message}")
        return APIError.from_service_error(exc).to_response()

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Validation Error",
                "message": "Request validation failed",
                "code": ErrorCode.VALIDATION_ERROR,
                "details": {"errors": [
                    {"loc": list(e.get("loc", [])), "msg": e.get("msg")}
                    for e in exc.errors()
                ]},
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] Internal error on {request.url.path}: {type(exc).__name__}: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal Error",
                "message": "An internal error occurred. Please try again later.",
                "code": ErrorCode.INTERNAL_ERROR,
                "details": {"log_id": log_id},
            },
        )
