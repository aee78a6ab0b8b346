import gzip
import json
import math
import time
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request, Response, Security, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask

import config
from core.errors import AdmissionRejected
from utils.logging import get_logger
from utils.server_load import report_server_load
from web.auth import api_key_header, validate_api_key
from web.models import ErrorResponse, ReviewsRequest, ReviewsResponse

logger = get_logger("web.routes")

router = APIRouter()

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
INVALID_API_KEY_MESSAGE = "Invalid API Key requested"
BLANK_FIRM_MESSAGE = "Firm Name cannot be blank."
RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later"
INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class GzipJSONResponse(JSONResponse):
    """JSON response whose body is always gzip-compressed."""

    def __init__(self, content: Any, status_code: int = 200,
                 headers: Optional[Dict[str, str]] = None, **kwargs):
        headers = dict(headers or {})
        headers["Content-Encoding"] = "gzip"
        super().__init__(content, status_code=status_code, headers=headers, **kwargs)

    def render(self, content: Any) -> bytes:
        return gzip.compress(super().render(content))


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(message=message).model_dump())


def parse_if_modified_since(value: Optional[str]) -> Optional[datetime]:
    """Parse an HTTP date header, returning None when it is absent or malformed."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def read_firm(request: Request) -> Optional[str]:
    """
    Firm name from a JSON or urlencoded form body, or None when the body is
    missing or unusable.
    """
    if request.headers.get("content-type", "").startswith(FORM_CONTENT_TYPE):
        form = await request.form()
        payload = dict(form)
    else:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
    if not isinstance(payload, dict):
        return None
    try:
        body = ReviewsRequest.model_validate(payload)
    except ValidationError:
        return None
    return body.firm


@router.post("/free-google-reviews")
async def free_google_reviews(request: Request, api_key: Optional[str] = Security(api_key_header)):
    """
    Scrape every visible review for the firm named in the request body.

    Checks run in order: API key, body, admission quota. Only then is a
    browser leased from the pool.
    """
    started_at = time.time()

    if not validate_api_key(api_key, request.app.state.api_key):
        logger.warning("Rejected request with invalid API key", client=client_key(request))
        return error_response(status.HTTP_401_UNAUTHORIZED, INVALID_API_KEY_MESSAGE)

    firm = await read_firm(request)
    if not firm:
        return error_response(status.HTTP_400_BAD_REQUEST, BLANK_FIRM_MESSAGE)

    try:
        request.app.state.admission.admit(client_key(request))
    except AdmissionRejected as e:
        logger.warning("Admission rejected", client=e.key, quota=e.quota, retry_after=e.retry_after)
        return PlainTextResponse(
            RATE_LIMIT_MESSAGE,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(max(1, math.ceil(e.retry_after)))},
        )

    try:
        result = await request.app.state.scraper.scrape(firm)
    except Exception as e:
        logger.exception("Scrape failed", firm=firm, error=str(e))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    payload = ReviewsResponse.model_validate(result.to_payload()).model_dump()
    if not result.found:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=payload)

    generated_at = datetime.now(timezone.utc).replace(microsecond=0)
    since = parse_if_modified_since(request.headers.get("if-modified-since"))
    if since is not None and generated_at <= since:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED)

    background = BackgroundTask(report_server_load, started_at) if config.SERVER_LOAD_REPORT else None
    return GzipJSONResponse(
        payload,
        headers={"Last-Modified": format_datetime(generated_at, usegmt=True)},
        background=background,
    )
