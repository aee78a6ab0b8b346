"""
Configuration settings for the review scraping service.
All values can be overridden through environment variables or a .env file.
"""

import os
from typing import Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

def get_env_bool(key: str, default: bool = False) -> bool:
    """Convert environment variable to boolean."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on')

def get_env_int(key: str, default: int) -> int:
    """Convert environment variable to integer."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default

def get_env_float(key: str, default: float) -> float:
    """Convert environment variable to float."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default

# Application settings
APP_NAME = "ReviewScrape"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Incremental review extraction over a pooled headless browser"

# Environment Configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = get_env_bool("DEBUG", ENVIRONMENT == "development")

# Server Settings
HOST = os.getenv("HOST", "0.0.0.0")
PORT = get_env_int("PORT", 3000 if ENVIRONMENT != "production" else 3001)
SSL_CERTFILE = os.getenv("SSL_CERTFILE", "certificates/fullchain.pem")
SSL_KEYFILE = os.getenv("SSL_KEYFILE", "certificates/privkey.pem")
USE_HTTPS = get_env_bool("USE_HTTPS", ENVIRONMENT == "production")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "").split(",") if os.getenv("CORS_ORIGINS") else ["*"]

# Authentication
API_KEY = os.getenv("API_KEY")
API_KEY_HEADER = os.getenv("API_KEY_HEADER", "apikey")

if not API_KEY and ENVIRONMENT == "production":
    raise ValueError("API_KEY environment variable is required in production")

# Browser Pool
POOL_MIN_SIZE = get_env_int("POOL_MIN_SIZE", 1)
POOL_MAX_SIZE = get_env_int("POOL_MAX_SIZE", 10)
POOL_ACQUIRE_TIMEOUT = get_env_float("POOL_ACQUIRE_TIMEOUT", 60.0)
POOL_CREATE_ATTEMPTS = get_env_int("POOL_CREATE_ATTEMPTS", 2)
BROWSER_HEADLESS = get_env_bool("BROWSER_HEADLESS", True)
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-web-security",
    "--disable-site-isolation-trials",
    "--disable-notifications",
    "--no-zygote",
]

# Search & Navigation (seconds)
SEARCH_URL = os.getenv("SEARCH_URL", "https://www.google.com/")
NAVIGATION_TIMEOUT = get_env_float("NAVIGATION_TIMEOUT", 15.0)
SEARCH_INPUT_TIMEOUT = get_env_float("SEARCH_INPUT_TIMEOUT", 5.0)
SEARCH_RESULT_TIMEOUT = get_env_float("SEARCH_RESULT_TIMEOUT", 5.0)
PAGE_LOAD_TIMEOUT = get_env_float("PAGE_LOAD_TIMEOUT", 2.0)
NAVIGATION_ATTEMPTS = get_env_int("NAVIGATION_ATTEMPTS", 2)

# Pagination (seconds)
COUNT_TIMEOUT = get_env_float("COUNT_TIMEOUT", 90.0)
GROWTH_TIMEOUT = get_env_float("GROWTH_TIMEOUT", 10.0)
SCROLL_SETTLE_DELAY = get_env_float("SCROLL_SETTLE_DELAY", 0.05)
SCROLL_PAUSE_INTERVAL = get_env_int("SCROLL_PAUSE_INTERVAL", 100)
SCROLL_PAUSE_DELAY = get_env_float("SCROLL_PAUSE_DELAY", 0.1)
SCROLL_CONCURRENCY = get_env_int("SCROLL_CONCURRENCY", 8)

# Extraction
EXTRACTION_MAX_ATTEMPTS = get_env_int("EXTRACTION_MAX_ATTEMPTS", 3)
EXTRACTION_RETRY_DELAY = get_env_float("EXTRACTION_RETRY_DELAY", 5.0)

# Admission
ASSUMED_PEAK_ITEMS = get_env_int("ASSUMED_PEAK_ITEMS", 2800)
ADMISSION_WINDOW_SECONDS = get_env_float("ADMISSION_WINDOW_SECONDS", 60.0)

# Monitoring & Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")
SERVER_LOAD_REPORT = get_env_bool("SERVER_LOAD_REPORT", True)

# Locators for the search page and the review listing
REVIEW_SELECTORS = {
    "search_input": "textarea",
    "result_link": ".hqzQac a",
    "total_count": ".hqzQac a span",
    "scroll_container": ".review-dialog-list",
    "review_item": ".gws-localreviews__google-review",
    "reviewer_link": ".TSUbDb a",
    "rating": ".lTi8oc.z3HNkc",
    "reviewer_picture": ".lDY1rd",
    "more_button": ".review-more-link",
    "expanded_text": ".f5axBf .review-full-text",
    "inline_text": ".Jtu6Td span[data-expandable-section]",
    "published_at": ".dehysf.lTi8oc",
}

# Suffix appended to a reviewer's identity URL to reach their review list
PROFILE_URL_SUFFIX = "/reviews/"

# Create a unified configuration dictionary
def get_config() -> Dict[str, Any]:
    """Get the full application configuration."""
    return {
        "app": {
            "name": APP_NAME,
            "version": APP_VERSION,
            "description": APP_DESCRIPTION
        },
        "server": {
            "host": HOST,
            "port": PORT,
            "debug": DEBUG,
            "https": USE_HTTPS
        },
        "pool": {
            "min_size": POOL_MIN_SIZE,
            "max_size": POOL_MAX_SIZE,
            "acquire_timeout": POOL_ACQUIRE_TIMEOUT,
            "create_attempts": POOL_CREATE_ATTEMPTS,
            "headless": BROWSER_HEADLESS
        },
        "pagination": {
            "count_timeout": COUNT_TIMEOUT,
            "growth_timeout": GROWTH_TIMEOUT,
            "settle_delay": SCROLL_SETTLE_DELAY,
            "pause_interval": SCROLL_PAUSE_INTERVAL,
            "pause_delay": SCROLL_PAUSE_DELAY,
            "concurrency": SCROLL_CONCURRENCY
        },
        "extraction": {
            "max_attempts": EXTRACTION_MAX_ATTEMPTS,
            "retry_delay": EXTRACTION_RETRY_DELAY
        },
        "admission": {
            "assumed_peak_items": ASSUMED_PEAK_ITEMS,
            "window_seconds": ADMISSION_WINDOW_SECONDS
        }
    }
