"""
Unit tests for middleware components.

Tests cover error handling middleware, the request validation handler,
request context middleware, and CORS.
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from pydantic import BaseModel

from smolchat.middleware.error_handler import (
    ErrorHandlerMiddleware,
    request_validation_handler,
)
from smolchat.observability.middleware import UNMATCHED_PATH
from smolchat.utils.exceptions import (
    DecodeError,
    DocumentRenderError,
    ModelNotLoadedError,
    PromptTooLongError,
    TokenizationError,
    ValidationError,
    VisionProcessError,
)


class _Body(BaseModel):
    name: str


# ============================================================================
# Error Handler Middleware Tests
# ============================================================================

class TestErrorHandlerMiddleware:
    """Test ErrorHandlerMiddleware behavior."""

    @pytest.fixture
    def error_app(self) -> FastAPI:
        """Create an app with error handler middleware."""
        app = FastAPI()
        app.add_middleware(ErrorHandlerMiddleware, debug=False)
        app.add_exception_handler(RequestValidationError, request_validation_handler)

        @app.get("/ok")
        async def ok_endpoint() -> dict:
            return {"status": "ok"}

        @app.get("/server-error")
        async def server_error_endpoint() -> None:
            raise RuntimeError("Internal error")

        @app.get("/validation-error")
        async def validation_error_endpoint() -> None:
            raise ValidationError("samples must not be empty", field="samples")

        @app.post("/body")
        async def body_endpoint(payload: _Body) -> dict:
            return {"name": payload.name}

        return app

    @pytest.fixture
    def error_client(self, error_app: FastAPI) -> TestClient:
        """Create test client for error app."""
        return TestClient(error_app, raise_server_exceptions=False)

    def test_passes_through_successful_requests(self, error_client: TestClient) -> None:
        """Successful requests pass through unchanged."""
        response = error_client.get("/ok")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_unexpected_errors_return_500(self, error_client: TestClient) -> None:
        """Unexpected exceptions are caught and hidden behind a generic message."""
        response = error_client.get("/server-error")

        assert response.status_code == 500
        assert response.json() == {"error": "An internal error occurred", "code": "INTERNAL_ERROR"}

    def test_validation_error_returns_400(self, error_client: TestClient) -> None:
        """ValidationError maps to 400 with its message."""
        response = error_client.get("/validation-error")

        assert response.status_code == 400
        assert response.json() == {"error": "samples must not be empty", "code": "VALIDATION_ERROR"}

    def test_request_body_missing_field(self, error_client: TestClient) -> None:
        response = error_client.post("/body", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: name", "code": "VALIDATION_ERROR"}

    def test_request_body_invalid_json(self, error_client: TestClient) -> None:
        response = error_client.post("/body", content=b"{", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON"


class TestErrorStatusMapping:
    """Every error kind other than ValidationError is a 500."""

    @pytest.mark.parametrize(
        "error",
        [
            ModelNotLoadedError(),
            TokenizationError(),
            PromptTooLongError(100, 64),
            DecodeError(1),
            VisionProcessError("Vision CLI exited with status 2"),
            DocumentRenderError("PDF has no pages"),
        ],
    )
    def test_internal_errors(self, error: Exception) -> None:
        app = FastAPI()
        app.add_middleware(ErrorHandlerMiddleware, debug=False)

        @app.get("/fail")
        async def fail() -> None:
            raise error

        response = TestClient(app, raise_server_exceptions=False).get("/fail")

        assert response.status_code == 500
        assert response.json()["code"] == error.error_code
        assert "details" not in response.json()


class TestErrorHandlerDebugMode:
    """Test ErrorHandlerMiddleware in debug mode."""

    @pytest.fixture
    def debug_client(self) -> TestClient:
        """Create test client for an app with debug mode enabled."""
        app = FastAPI()
        app.add_middleware(ErrorHandlerMiddleware, debug=True)

        @app.get("/error")
        async def error_endpoint() -> None:
            raise RuntimeError("Debug error")

        @app.get("/too-long")
        async def too_long_endpoint() -> None:
            raise PromptTooLongError(3000, 2048)

        return TestClient(app, raise_server_exceptions=False)

    def test_debug_mode_includes_traceback(self, debug_client: TestClient) -> None:
        response = debug_client.get("/error")

        assert response.status_code == 500
        details = response.json()["details"]
        assert details["type"] == "RuntimeError"
        assert "Debug error" in details["traceback"]

    def test_debug_mode_includes_error_details(self, debug_client: TestClient) -> None:
        response = debug_client.get("/too-long")

        assert response.json()["details"] == {"n_tokens": 3000, "n_ctx": 2048}


# ============================================================================
# Request Context Middleware Tests
# ============================================================================

class TestRequestContextMiddleware:
    """Test RequestContextMiddleware behavior."""

    def test_generates_request_id_if_missing(self, test_client: TestClient) -> None:
        response = test_client.get("/health")

        assert response.status_code == 200
        assert len(response.headers["X-Request-ID"]) == 32

    def test_propagates_existing_request_id(self, test_client: TestClient) -> None:
        response = test_client.get("/health", headers={"X-Request-ID": "test-request-123"})

        assert response.headers["X-Request-ID"] == "test-request-123"

    def test_error_responses_carry_request_id(self, test_client: TestClient) -> None:
        response = test_client.post("/ai/inbox/classify", json={}, headers={"X-Request-ID": "bad-req"})

        assert response.status_code == 400
        assert response.headers["X-Request-ID"] == "bad-req"

    def test_unmatched_paths_share_one_metric_label(self, test_client: TestClient) -> None:
        labels = {"method": "GET", "path": UNMATCHED_PATH, "status_code": "404"}
        before = REGISTRY.get_sample_value("smolchat_http_requests_total", labels) or 0.0

        for scan_path in ("/wp-admin/setup.php", "/.env", "/random/deep/path"):
            assert test_client.get(scan_path).status_code == 404

        assert REGISTRY.get_sample_value("smolchat_http_requests_total", labels) == before + 3
        raw = {"method": "GET", "path": "/.env", "status_code": "404"}
        assert REGISTRY.get_sample_value("smolchat_http_requests_total", raw) is None

    def test_matched_paths_use_route_template(self, test_client: TestClient) -> None:
        labels = {"method": "GET", "path": "/health", "status_code": "200"}
        before = REGISTRY.get_sample_value("smolchat_http_requests_total", labels) or 0.0

        test_client.get("/health")

        assert REGISTRY.get_sample_value("smolchat_http_requests_total", labels) == before + 1


# ============================================================================
# CORS and Routing Tests
# ============================================================================

class TestCORSMiddleware:
    """Test CORS middleware configuration."""

    def test_cors_preflight_allowed(self, test_client: TestClient) -> None:
        response = test_client.options(
            "/ai/inbox/classify",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code in [200, 204]
        assert "access-control-allow-origin" in response.headers


class TestRouting:
    """Test unmatched routes."""

    def test_not_found_returns_404(self, test_client: TestClient) -> None:
        assert test_client.get("/nonexistent-endpoint").status_code == 404

    def test_method_not_allowed_returns_405(self, test_client: TestClient) -> None:
        assert test_client.get("/ai/profile/persona").status_code == 405


# ============================================================================
# Async Middleware Tests
# ============================================================================

class TestAsyncMiddleware:
    """Test async middleware behavior."""

    async def test_concurrent_requests_get_distinct_ids(self, async_client) -> None:
        responses = await asyncio.gather(*[async_client.get("/health") for _ in range(5)])

        assert all(response.status_code == 200 for response in responses)
        assert len({response.headers["X-Request-ID"] for response in responses}) == 5
