from typing import Dict, List, Optional, Sequence, Union, TYPE_CHECKING
from fastapi import FastAPI, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError
import traceback
from .logging import get_logger
from .responses import ResponseBuilder

if TYPE_CHECKING:
    from student_registry.validation.student_validator import FieldError

logger = get_logger()


class StoreError(Exception):
    """The record store failed or timed out. The message is safe to show clients."""

    def __init__(self, message: str = "A database error occurred", error_code: str = "STORE_ERROR"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class DuplicateKeyError(StoreError):
    """An insert collided with an existing key."""

    def __init__(self, message: str = "Duplicate key", error_code: str = "DUPLICATE_KEY"):
        super().__init__(message, error_code)


class NotFoundError(Exception):
    """Custom exception for resource not found errors."""

    def __init__(
        self, message: str = "Student not found", error_code: str = "NOT_FOUND"
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class StudentValidationError(Exception):
    """The client payload violates the student schema."""

    def __init__(
        self,
        errors: Sequence["FieldError"],
        message: str = "Student validation failed",
        error_code: str = "VALIDATION_ERROR",
    ):
        super().__init__(message)
        self.errors = list(errors)
        self.message = message
        self.error_code = error_code


class RateLimitError(Exception):
    """The client exceeded its request allowance for the current window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str = "Too many requests from this IP, please try again later.",
        error_code: str = "RATE_LIMITED",
        retry_after: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.retry_after = retry_after


class OriginRejectedError(Exception):
    """The request origin is not in the allow-list."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Not allowed by CORS", error_code: str = "ORIGIN_REJECTED"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


def _format_pydantic_errors(errors) -> List[Dict]:
    formatted_errors = []
    for error in errors:
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        formatted_errors.append(
            {
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
                "input": error.get("input"),
            }
        )
    return formatted_errors


def setup_error_handlers(app: FastAPI):
    """Setup custom error handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        return ResponseBuilder.error(
            request=request,
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
            meta={"http_status": exc.status_code},
        )

    """
    RequestValidationError covers request-shape problems FastAPI detects itself,
    such as a non-integer path id or a body that is not JSON.
    """

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.warning(f"Request Validation Error: {exc.errors()}")

        return ResponseBuilder.error(
            request=request,
            message="Request validation failed",
            errors=_format_pydantic_errors(exc.errors()),
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(StudentValidationError)
    async def student_validation_exception_handler(
        request: Request, exc: StudentValidationError
    ):
        logger.info(
            f"Student payload rejected: {[error.field for error in exc.errors]}"
        )

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            errors=[error.to_dict() for error in exc.errors],
            error_code=exc.error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    """
    Pydantic errors outside request parsing come from our own response data.
    """

    @app.exception_handler(ValidationError)
    async def pydantic_validation_exception_handler(
        request: Request, exc: ValidationError
    ):
        logger.error(f"Pydantic Validation Error: {exc.errors()}")

        return ResponseBuilder.error(
            request=request,
            message="Internal Server Error",
            error_code="INTERNAL_VALIDATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(StoreError)
    async def store_exception_handler(request: Request, exc: StoreError):
        logger.error(f"Store Error: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "STORE_ERROR"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"SQLAlchemy Error: {str(exc)}")

        # Don't expose internal database errors to users
        return ResponseBuilder.error(
            request=request,
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "SQLALCHEMY_ERROR"},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_exception_handler(request: Request, exc: NotFoundError):
        logger.info(f"Not Found Error: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_404_NOT_FOUND,
            meta={"error_type": "NOT_FOUND_ERROR"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions"""
        logger.error(f"Unhandled Exception: {str(exc)}")
        logger.error(f"Traceback: {traceback.format_exc()}")

        return ResponseBuilder.error(
            request=request,
            message="Internal Server Error",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "INTERNAL_ERROR"},
        )


def guard_rejection_response(
    request: Request,
    exc: Union[RateLimitError, OriginRejectedError],
    headers: Optional[Dict[str, str]] = None,
):
    """Render a guard rejection. Guards run as middleware, outside the exception handlers."""
    logger.warning(f"Request rejected by guard: {exc.error_code}")

    response = ResponseBuilder.error(
        request=request,
        message=exc.message,
        error_code=exc.error_code,
        status_code=exc.status_code,
    )
    for header_name, header_value in (headers or {}).items():
        response.headers[header_name] = header_value
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        response.headers["Retry-After"] = str(exc.retry_after)
    return response
