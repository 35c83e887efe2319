"""RFC 7807 problem bodies for error responses.

Reference: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from backoffice.core.logging import request_id_ctx

PROBLEM_TYPES = {
    "INTERNAL_ERROR": "/errors/internal",
    "VALIDATION_ERROR": "/errors/validation",
    "SERVICE_UNAVAILABLE": "/errors/service-unavailable",
}


def problem_type(code: str) -> str:
    """Relative type URI for an error code; unknown codes get a derived slug."""
    return PROBLEM_TYPES.get(code, "/errors/" + code.lower().replace("_", "-"))


class ProblemDetail(BaseModel):
    """Problem body plus the code and request_id extension members."""

    model_config = ConfigDict(extra="allow")

    type: str
    title: str
    status: int
    detail: str | None = None
    instance: str | None = None
    code: str
    request_id: str | None = None
    errors: list[dict[str, Any]] | None = None

    @classmethod
    def for_request(
        cls,
        status: int,
        title: str,
        code: str,
        detail: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> "ProblemDetail":
        """Build a problem tied to the request being served, if any."""
        request_id = request_id_ctx.get()
        return cls(
            type=problem_type(code),
            title=title,
            status=status,
            detail=detail,
            instance=f"/requests/{request_id}" if request_id else None,
            code=code,
            request_id=request_id,
            errors=errors,
        )


class ProblemDetailResponse(JSONResponse):
    media_type = "application/problem+json"

    def __init__(self, problem: ProblemDetail) -> None:
        super().__init__(
            status_code=problem.status,
            content=problem.model_dump(exclude_none=True),
        )
