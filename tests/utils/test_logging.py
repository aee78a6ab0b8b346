from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from utils.logging import REQUEST_ID_HEADER, log_request_middleware


def make_request(headers=None):
    request = MagicMock()
    request.method = "POST"
    request.url.path = "/api/free-google-reviews"
    request.client.host = "127.0.0.1"
    request.headers = headers or {}
    return request


class TestLogRequestMiddleware:
    """Test suite for log_request_middleware."""

    @pytest.mark.asyncio
    async def test_request_id_is_bound_while_serving(self):
        """Test that the caller's request id is in the log context during the request and echoed back."""
        seen = {}

        async def call_next(request):
            seen.update(structlog.contextvars.get_contextvars())
            response = MagicMock()
            response.status_code = 200
            response.headers = {}
            return response

        response = await log_request_middleware(make_request({REQUEST_ID_HEADER: "abc-123"}), call_next)

        assert seen["request_id"] == "abc-123"
        assert response.headers[REQUEST_ID_HEADER] == "abc-123"
        assert "request_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_request_id_generated_when_absent(self):
        response = MagicMock()
        response.status_code = 204
        response.headers = {}

        result = await log_request_middleware(make_request(), AsyncMock(return_value=response))

        assert result.headers[REQUEST_ID_HEADER].startswith("req-")
        assert len(result.headers[REQUEST_ID_HEADER]) == len("req-") + 12

    @pytest.mark.asyncio
    async def test_context_cleared_when_handler_raises(self):
        call_next = AsyncMock(side_effect=RuntimeError("handler blew up"))

        with pytest.raises(RuntimeError):
            await log_request_middleware(make_request(), call_next)

        assert "request_id" not in structlog.contextvars.get_contextvars()
