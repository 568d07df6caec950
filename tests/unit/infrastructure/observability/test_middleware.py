"""Unit tests for RequestLoggingMiddleware."""

import logging
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.middleware.base import BaseHTTPMiddleware

from jukebox.infrastructure.observability.middleware import RequestLoggingMiddleware

LOGGER_PATH = "jukebox.infrastructure.observability.middleware.logger"


class TestRequestLoggingMiddleware:
    """Test suite for RequestLoggingMiddleware."""

    @pytest.fixture
    def app(self) -> FastAPI:
        """Create a FastAPI app with middleware for testing."""
        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"message": "test"}

        @app.get("/api/esp32/poll")
        async def poll_endpoint():
            return {}

        @app.get("/covers/p1-5.jpg")
        async def cover_endpoint():
            return {"cover": True}

        @app.get("/error")
        async def error_endpoint():
            raise ValueError("Test error")

        return app

    @pytest.fixture
    def client(self, app: FastAPI) -> TestClient:
        """Create a test client."""
        return TestClient(app)

    def test_middleware_is_base_http_middleware(self):
        middleware = RequestLoggingMiddleware(app=FastAPI())

        assert isinstance(middleware, BaseHTTPMiddleware)

    def test_successful_request_logs_start_and_completion(self, client: TestClient):
        with patch(LOGGER_PATH) as mock_logger:
            response = client.get("/test")

            assert response.status_code == 200
            assert mock_logger.log.call_count == 2

            level, message = mock_logger.log.call_args_list[1][0][:2]
            assert level == logging.INFO
            assert "GET /test" in message
            assert "200" in message
            assert "ms" in message

    def test_poll_requests_logged_at_debug(self, client: TestClient):
        with patch(LOGGER_PATH) as mock_logger:
            client.get("/api/esp32/poll")

            levels = {call[0][0] for call in mock_logger.log.call_args_list}
            assert levels == {logging.DEBUG}

    def test_cover_requests_not_logged(self, client: TestClient):
        with patch(LOGGER_PATH) as mock_logger:
            response = client.get("/covers/p1-5.jpg")

            assert response.status_code == 200
            mock_logger.log.assert_not_called()

    def test_correlation_id_echoed(self, client: TestClient):
        response = client.get("/test", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    def test_correlation_id_generated_when_missing(self, client: TestClient):
        response = client.get("/test")

        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_failed_request_logs_exception(self, client: TestClient):
        with patch(LOGGER_PATH) as mock_logger:
            with pytest.raises(ValueError, match="Test error"):
                client.get("/error")

            mock_logger.exception.assert_called_once()
            extra = mock_logger.exception.call_args.kwargs["extra"]
            assert extra["error_type"] == "ValueError"
            assert extra["path"] == "/error"
