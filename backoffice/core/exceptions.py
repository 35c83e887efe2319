"""Application errors and their HTTP rendering."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from backoffice.core.logging import get_logger
from backoffice.core.problem_details import ProblemDetail, ProblemDetailResponse

logger = get_logger(__name__)


class BackofficeError(Exception):
    """Base class for errors surfaced to API clients as problem details.

    Subclasses set the class attributes; instances carry the message and
    optional structured context for logs.
    """

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    title: str = "Internal Server Error"
    default_message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class StoreUnavailableError(BackofficeError):
    """A transaction store query failed.

    Raised by store implementations and passed through the analytics
    service untouched. Nothing retries it.
    """

    code = "SERVICE_UNAVAILABLE"
    status_code = 503
    title = "Service Unavailable"
    default_message = "Transaction store unavailable"


async def backoffice_error_handler(request: Request, exc: BackofficeError) -> ProblemDetailResponse:
    logger.error(
        "app.error_handled",
        error=exc.message,
        error_code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
        path=request.url.path,
    )
    return ProblemDetailResponse(
        ProblemDetail.for_request(
            status=exc.status_code,
            title=exc.title,
            code=exc.code,
            detail=exc.message,
        )
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Report each invalid request field as an entry of ``errors``."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": str(error.get("msg", "Invalid value")),
            "type": str(error.get("type", "unknown")),
        }
        for error in exc.errors()
    ]
    logger.warning(
        "app.validation_error",
        path=request.url.path,
        fields=[error["field"] for error in errors],
    )
    return ProblemDetailResponse(
        ProblemDetail.for_request(
            status=422,
            title="Validation Error",
            code="VALIDATION_ERROR",
            detail=f"{len(errors)} invalid field(s)",
            errors=errors,
        )
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> ProblemDetailResponse:
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return ProblemDetailResponse(
        ProblemDetail.for_request(
            status=500,
            title="Internal Server Error",
            code="INTERNAL_ERROR",
            detail="Unexpected error; quote the request_id when reporting it.",
        )
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the problem-details handlers on an app."""
    app.add_exception_handler(BackofficeError, backoffice_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
