"""Application error definitions and FastAPI handlers."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


class AppException(Exception):
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, code: str = "error"):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class NotFoundException(AppException):
    def __init__(self, message: str = "Order not found"):
        super().__init__(message=message, status_code=status.HTTP_404_NOT_FOUND, code="not_found")


class InvalidStateTransitionException(AppException):
    def __init__(self, message: str = "Invalid state transition", code: str = "invalid_state"):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, code=code)


class InsufficientStockException(InvalidStateTransitionException):
    def __init__(self, message: str = "Insufficient stock"):
        super().__init__(message=message, code="insufficient_stock")


class ValidationAppException(AppException):
    def __init__(self, message: str = "Invalid data"):
        super().__init__(message=message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, code="validation_error")


class ConfigurationInvariantViolation(AppException):
    """Raised for states that dispatch must never produce; not retryable."""

    def __init__(self, message: str):
        super().__init__(
            message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, code="configuration_invariant"
        )


class DownstreamServiceException(AppException):
    """A collaborator call the requested action itself depends on has failed."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, code="downstream_error")


def _format_error(detail: str, code: str):
    return {"message": detail, "code": code}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_format_error(exc.message, exc.code))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_format_error("Request payload could not be validated", "validation_error"),
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_format_error("Request payload could not be validated", "validation_error"),
        )

    @app.exception_handler(StaleDataError)
    async def stale_data_handler(request: Request, exc: StaleDataError):
        # Another request changed the same order first; caller should re-read and retry.
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_format_error("Order was modified concurrently, reload and retry", "invalid_state"),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_format_error("Internal server error", "internal_error"),
        )


def require_status(order, allowed, action: str) -> None:
    """Raise InvalidStateTransitionException unless ``order.status`` is one of ``allowed``."""
    allowed_values = {getattr(s, "value", s) for s in allowed}
    if order.status not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        raise InvalidStateTransitionException(
            f"Cannot {action} {order.order_number}: status is {order.status}, expected {expected}"
        )
