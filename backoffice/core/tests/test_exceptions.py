"""Tests for problem-details error rendering."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from backoffice.core.exceptions import (
    BackofficeError,
    StoreUnavailableError,
    register_exception_handlers,
)
from backoffice.core.logging import request_id_ctx
from backoffice.core.problem_details import ProblemDetail, problem_type


class ReportNotFoundError(BackofficeError):
    code = "NOT_FOUND"
    status_code = 404
    title = "Not Found"


def build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/store-down")
    async def store_down() -> None:
        raise StoreUnavailableError(details={"operation": "aggregate_today"})

    @app.get("/missing")
    async def missing() -> None:
        raise ReportNotFoundError("No such report")

    @app.get("/typed")
    async def typed(limit: int) -> dict[str, int]:
        return {"limit": limit}

    @app.get("/boom")
    async def boom() -> None:
        raise ZeroDivisionError("division by zero")

    return app


@pytest.fixture
async def error_client():
    async with AsyncClient(
        transport=ASGITransport(app=build_app(), raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac


class TestErrorClasses:
    def test_store_unavailable_defaults(self):
        exc = StoreUnavailableError()

        assert isinstance(exc, BackofficeError)
        assert exc.status_code == 503
        assert exc.code == "SERVICE_UNAVAILABLE"
        assert exc.message == "Transaction store unavailable"
        assert exc.details == {}
        assert str(exc) == exc.message

    def test_custom_message_and_details(self):
        exc = StoreUnavailableError("query failed", details={"operation": "aggregate_by_hour"})

        assert exc.message == "query failed"
        assert exc.details["operation"] == "aggregate_by_hour"


class TestHandlers:
    @pytest.mark.asyncio
    async def test_store_unavailable_rendered_as_503_problem(self, error_client):
        response = await error_client.get("/store-down")

        assert response.status_code == 503
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["type"] == "/errors/service-unavailable"
        assert body["title"] == "Service Unavailable"
        assert body["detail"] == "Transaction store unavailable"
        assert "errors" not in body

    @pytest.mark.asyncio
    async def test_subclass_status_is_used(self, error_client):
        response = await error_client.get("/missing")

        assert response.status_code == 404
        assert response.json()["type"] == "/errors/not-found"

    @pytest.mark.asyncio
    async def test_validation_error_lists_fields(self, error_client):
        response = await error_client.get("/typed", params={"limit": "many"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "query.limit"

    @pytest.mark.asyncio
    async def test_unexpected_error_hides_details(self, error_client):
        response = await error_client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert "division" not in body["detail"]


class TestProblemDetail:
    def test_bound_to_current_request(self):
        token = request_id_ctx.set("req-42")
        try:
            problem = ProblemDetail.for_request(status=503, title="Down", code="SERVICE_UNAVAILABLE")
        finally:
            request_id_ctx.reset(token)

        assert problem.instance == "/requests/req-42"
        assert problem.request_id == "req-42"

    def test_no_request_no_instance(self):
        problem = ProblemDetail.for_request(status=500, title="Oops", code="INTERNAL_ERROR")

        assert problem.instance is None
        assert problem.request_id is None

    def test_unknown_code_gets_derived_type(self):
        assert problem_type("RATE_LIMITED") == "/errors/rate-limited"
