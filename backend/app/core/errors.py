"""
Typed failures raised by the services and their mapping to HTTP responses.

Services never build HTTP responses themselves - they raise one of the
AppError subclasses below and the handlers registered here translate the
failure kind into a status code. Internal details are logged, never returned.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for failures that carry a user-visible message"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized access"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access forbidden"


class VerificationError(AppError):
    """Duplicate registration or malformed input"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Verification failed"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the failure-kind to status-code mapping to the app"""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        headers = None
        if isinstance(exc, UnauthorizedError):
            headers = {"WWW-Authenticate": "Bearer"}
        logger.info(
            "%s %s -> %s: %s",
            request.method, request.url.path, exc.status_code, exc.message
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        # Malformed input is a verification failure (400), not FastAPI's default 422
        errors = [
            {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
             "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        message = errors[0]["message"] if errors else "Invalid request"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": message, "errors": errors},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Catch-all - full traceback goes to the log, the caller only sees a generic message
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )
