"""
Error taxonomy shared by the services and the HTTP layer.

Every domain failure is a TodoError subclass carrying a stable ``kind``
and the HTTP status it maps to. The handlers at the bottom turn them
(and framework or storage failures) into ``{"error": {"kind", "message"}}``
bodies so nothing internal leaks to the client.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TodoError(Exception):
    kind = "Internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TodoError):
    kind = "ValidationError"
    status_code = 422
    default_message = "Invalid request"


class WeakCredential(ValidationError):
    kind = "WeakCredential"
    default_message = "Secret does not satisfy the password policy"


class Unauthenticated(TodoError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class InvalidCredentials(TodoError):
    kind = "InvalidCredentials"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid login or secret"


class NotFound(TodoError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class DuplicateLogin(TodoError):
    kind = "DuplicateLogin"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Login is already taken"


class Conflict(TodoError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflicting update"


class Transient(TodoError):
    kind = "Transient"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage temporarily unavailable, retry later"


class Internal(TodoError):
    pass


STORAGE_ERRORS = (OperationalError, PoolTimeoutError)


def error_body(kind: str, message: str) -> dict:
    return {"error": {"kind": kind, "message": message}}


def error_response(error: TodoError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error_body(error.kind, error.message),
    )


async def handle_todo_error(request: Request, exc: TodoError) -> JSONResponse:
    return error_response(exc)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Report the first offending field, e.g. "body.text: Field required"
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg', 'invalid value')}"
    else:
        message = ValidationError.default_message
    return error_response(ValidationError(message))


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        kind = NotFound.kind
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        kind = "MethodNotAllowed"
    else:
        kind = "HTTPError"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(kind, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def handle_storage_error(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Storage unavailable during %s %s: %s", request.method, request.url.path, exc)
    return error_response(Transient())


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error during %s %s", request.method, request.url.path)
    return error_response(Internal())


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error taxonomy to the application"""
    app.add_exception_handler(TodoError, handle_todo_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    for storage_error in STORAGE_ERRORS:
        app.add_exception_handler(storage_error, handle_storage_error)
    app.add_exception_handler(Exception, handle_unexpected)
