"""Exception handlers rendering every failure as the error envelope."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from io_manager.common.config import IOManagerSettings
from io_manager.common.exceptions import IOManagerError
from io_manager.common.logging import get_logger
from io_manager.common.schemas import ErrorResponse

logger = get_logger("errors")


def _error_response(status_code: int, message: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def validation_message(exc: RequestValidationError) -> str:
    """First validation error as ``"<Field> is required"`` or ``"<Field>: <reason>"``."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = first.get("loc") or ()
    field = str(loc[-1]) if loc else "request"
    if first.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {first.get('msg', 'invalid value')}"


def register_exception_handlers(app: FastAPI, settings: IOManagerSettings) -> None:
    @app.exception_handler(IOManagerError)
    async def handle_service_error(request: Request, exc: IOManagerError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "%s %s -> %d %s: %s",
            request.method, request.url.path, exc.status_code, exc.code, exc.message,
        )
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = validation_message(exc)
        logger.info("%s %s -> 400 %s", request.method, request.url.path, message)
        return _error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        details = f"{type(exc).__name__}: {exc}" if settings.is_development else None
        return _error_response(500, "Internal server error", details)
