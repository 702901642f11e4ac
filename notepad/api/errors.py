import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class NotepadError(Exception):
    """Base class for errors that are reported to the client as ``{"message": ...}``."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(NotepadError):
    """Missing or malformed input."""
    status_code = 400
    message = "Invalid input"


class DuplicateEmail(NotepadError):
    status_code = 400
    message = "Email already registered"


class InvalidCredentials(NotepadError):
    """Same error for an unknown email and a wrong password."""
    status_code = 401
    message = "Invalid credentials"


class Unauthenticated(NotepadError):
    status_code = 401
    message = "Could not validate credentials"


class NotFound(NotepadError):
    """Note is absent or owned by someone else; the two are not told apart."""
    status_code = 404
    message = "Note not found"


class InternalError(NotepadError):
    status_code = 500
    message = "Internal server error"


def _message_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


async def notepad_error_handler(request: Request, exc: NotepadError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return _message_response(exc.status_code, exc.message, headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _message_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = ValidationError.message
    return _message_response(400, message)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database failure on %s %s", request.method, request.url.path)
    return _message_response(InternalError.status_code, InternalError.message)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _message_response(InternalError.status_code, InternalError.message)


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Translate every error raised while handling a request into a JSON ``{message}`` body."""
    app.add_exception_handler(NotepadError, notepad_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
