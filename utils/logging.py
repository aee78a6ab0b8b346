"""
Logging setup for ReviewScrape.

Core modules log through stdlib ``logging``; the web layer and controllers
use structlog loggers from ``get_logger``. Both end up in the same stdout
handler, rendered as JSON in production and as colored console lines
elsewhere.
"""

import logging
import sys
import time
import uuid

import structlog

import config

REQUEST_ID_HEADER = "X-Request-ID"

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(message)s",
    stream=sys.stdout,
)

USE_JSON_LOGS = config.LOG_FORMAT.lower() in ("json", "structured") or config.ENVIRONMENT == "production"

structlog.configure(
    processors=[
        # request_id bound by the middleware below
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if USE_JSON_LOGS else structlog.dev.ConsoleRenderer(colors=True),
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)


async def log_request_middleware(request, call_next):
    """
    Tag every log line emitted while serving a request with its request id,
    and log one line when the request arrives and one when it completes.

    The id comes from the ``X-Request-ID`` header when the caller sends one
    and is echoed back on the response.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or f"req-{uuid.uuid4().hex[:12]}"
    structlog.contextvars.bind_contextvars(request_id=request_id)

    log = structlog.get_logger("api")
    started = time.perf_counter()
    log.info(
        "Request received",
        method=request.method,
        path=request.url.path,
        client=request.client.host if request.client else "unknown",
    )

    try:
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        log.info("Response sent", status_code=response.status_code, duration_ms=duration_ms)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    except Exception as e:
        log.exception("Request failed", error=str(e))
        raise
    finally:
        structlog.contextvars.unbind_contextvars("request_id")


def get_logger(name: str = None):
    """Get a structlog logger."""
    return structlog.get_logger(name)
