"""API error envelope and exception mapping.

Every non-2xx response carries a single human-readable ``{"error": "..."}``;
no structured error codes cross the HTTP boundary.
"""

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from photojournal.error_handling import ErrorCategory, PhotoJournalError, get_error_handler
from photojournal.logging_config import get_logger

logger = get_logger(__name__)

_CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorCategory.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorCategory.UPSTREAM: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for_error(error: PhotoJournalError) -> int:
    return _CATEGORY_TO_STATUS.get(error.category, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Register the error envelope handlers."""

    @app.exception_handler(PhotoJournalError)
    async def _photojournal_error_handler(request: Request, exc: PhotoJournalError) -> JSONResponse:
        error_info = get_error_handler().handle_error(exc, {"path": request.url.path, "method": request.method})
        return error_response(error_info.user_message, status_for_error(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("request_validation_failed", path=request.url.path, errors=exc.errors())
        return error_response("Invalid request", status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail) if exc.detail is not None else "Request failed"},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_api_exception", path=request.url.path, error=str(exc), exc_info=exc)
        return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
