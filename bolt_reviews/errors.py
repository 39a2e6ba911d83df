import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# =====================================================
# ERROR TAXONOMY
# =====================================================

class ReviewsAppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ReviewsAppError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ReviewsAppError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamFailure(ReviewsAppError):
    """The Shopify Admin API returned an error or no data."""


class PersistenceFailure(ReviewsAppError):
    """A storage operation raised."""


def error_body(message: str, details: str | None = None) -> dict:
    body = {"error": message}
    if details:
        body["details"] = details
    return body


# =====================================================
# HANDLERS
# =====================================================

async def _app_error_handler(request: Request, exc: ReviewsAppError):
    if exc.status_code >= 500:
        logger.error(
            "Request failed | path=%s | error=%s | details=%s",
            request.url.path,
            exc.message,
            exc.details,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details),
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Invalid request", "; ".join(problems)),
    )


async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error | path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", str(exc)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReviewsAppError, _app_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
