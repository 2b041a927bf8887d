"""
Global exception handlers and custom exception classes.

Every error leaving the API uses the same envelope:
    {"status": "error", "message": "<text>"}
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
import logging

# Set up logging
logger = logging.getLogger(__name__)

class AppException(Exception):
    """
    Base exception class for application-specific exceptions.
    """
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail

class UnknownActionException(AppException):
    """Exception raised when the requested action is not supported."""
    def __init__(self, action: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, f"Unknown action: {action}")

class InvalidPayloadException(AppException):
    """Exception raised when the request body cannot be used for the action."""
    def __init__(self, detail: str = "Invalid payload"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)

class UnknownCollectionException(AppException):
    """Exception raised when a row store collection does not exist."""
    def __init__(self, collection: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, f"Unknown collection: {collection}")

class RecordNotFoundException(AppException):
    """Exception raised when no row carries the requested id."""
    def __init__(self, collection: str, record_id: str):
        super().__init__(status.HTTP_404_NOT_FOUND, f"ID not found in {collection}: {record_id}")

class DuplicateIdException(AppException):
    """Exception raised when a create names an id that is already taken."""
    def __init__(self, collection: str, record_id: str):
        super().__init__(status.HTTP_409_CONFLICT, f"Duplicate id in {collection}: {record_id}")

class InvalidTransitionException(AppException):
    """Exception raised when a study status change would break the workflow."""
    def __init__(self, current: str, requested: str):
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Illegal study status transition: {current or 'unset'} -> {requested}"
        )


def error_response(status_code: int, message: str) -> JSONResponse:
    """
    Build the uniform error envelope.

    Args:
        status_code: HTTP status code
        message: Human readable error message

    Returns:
        JSONResponse: Error response
    """
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message}
    )


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    logger.error(f"Application error: {exc.detail}")
    return error_response(exc.status_code, exc.detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.
    """
    logger.error(f"Validation error: {exc.errors()}")
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, f"Validation error: {exc.errors()}")


async def payload_validation_exception_handler(request: Request, exc: ValidationError):
    """
    Handler for payload models validated inside the dispatcher.
    """
    errors = exc.errors()
    logger.error(f"Payload validation error: {errors}")
    fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in errors)
    return error_response(status.HTTP_400_BAD_REQUEST, f"Invalid payload: {fields}")


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Handler for anything not covered above, so callers still get the envelope.
    """
    logger.exception(f"Unhandled error: {str(exc)}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, payload_validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
