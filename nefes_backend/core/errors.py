from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nefes_backend.core.logger import get_logger

logger = get_logger(__name__)


class QuoteServiceError(Exception):
    """Base error; carries the HTTP status and the message shown to the client."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class MissingFieldError(QuoteServiceError):
    status_code = 400
    message = "Please fill in the required fields"

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        super().__init__(f"{self.message}: {', '.join(self.fields)}")


class InvalidPhoneError(QuoteServiceError):
    status_code = 400
    message = "Enter a valid phone number (05XX XXX XX XX)"


class InvalidStatusError(QuoteServiceError):
    status_code = 400
    message = "Invalid status"


class AdminUnauthorizedError(QuoteServiceError):
    status_code = 401
    message = "Unauthorized"


class QuoteNotFoundError(QuoteServiceError):
    status_code = 404
    message = "Quote not found"


class QuoteStoreError(QuoteServiceError):
    status_code = 500
    message = "A storage error occurred. Please try again."


class DuplicateQuoteNumberError(QuoteStoreError):
    def __init__(self, quote_number: str):
        self.quote_number = quote_number
        super().__init__()


def error_body(message: str, **extra) -> dict:
    return {"status": "error", "message": message, **extra}


async def quote_service_error_handler(request: Request, exc: QuoteServiceError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc!r}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # An unsupported method on a known path is just another unmatched route.
    if exc.status_code in (404, 405):
        logger.info(f"404: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=404,
            content=error_body("Endpoint not found", path=request.url.path),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    logger.warning(f"Malformed request on {request.url.path}: {problems}")
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request", errors=problems),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Server error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QuoteServiceError, quote_service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
