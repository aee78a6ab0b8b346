"""
Authentication module.
Provides the API key header scheme and constant-time key validation.
"""
import secrets
from typing import Optional

from fastapi.security import APIKeyHeader

import config
from utils.logging import get_logger

logger = get_logger("web.auth")

# API Key security scheme
api_key_header = APIKeyHeader(name=config.API_KEY_HEADER, auto_error=False)


def validate_api_key(provided: Optional[str], expected: Optional[str]) -> bool:
    """
    Check a provided API key against the configured secret.

    When no secret is configured, requests are only accepted in development.
    """
    if not expected:
        if config.ENVIRONMENT == "development":
            logger.warning("No API key configured, accepting request in development mode")
            return True
        return False

    if not provided:
        return False

    return secrets.compare_digest(provided.encode(), expected.encode())
