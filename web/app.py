# web/app.py - FastAPI App Factory for ReviewScrape
"""
FastAPI application factory for ReviewScrape.
Wires the browser pool, the admission controller and the review scraper
into the web API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

# Import configuration
import config

# Import logging utilities
from utils.logging import log_request_middleware, get_logger

# Import routes
from web.routes import router as api_router

# Import core services
from controllers.review_scraper import ReviewScraper
from core.admission import AdmissionController
from core.browser_pool import BrowserPool

# Setup logger
logger = get_logger("web.app")


def build_pool() -> BrowserPool:
    """Browser pool sized from config."""
    return BrowserPool(
        min_size=config.POOL_MIN_SIZE,
        max_size=config.POOL_MAX_SIZE,
        acquire_timeout=config.POOL_ACQUIRE_TIMEOUT,
        create_attempts=config.POOL_CREATE_ATTEMPTS,
        headless=config.BROWSER_HEADLESS,
        browser_args=config.BROWSER_ARGS,
    )


def create_app(debug: bool = False,
               pool: Optional[BrowserPool] = None,
               scraper: Optional[ReviewScraper] = None,
               admission: Optional[AdmissionController] = None,
               api_key: Optional[str] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        debug: Enable debug mode with API docs
        pool: Browser pool to use, built from config when omitted
        scraper: Review scraper to use, built over ``pool`` when omitted
        admission: Admission controller, built from config when omitted
        api_key: Accepted API key, ``config.API_KEY`` when omitted

    Returns:
        Configured FastAPI application instance
    """
    pool = pool if pool is not None else build_pool()
    admission = admission if admission is not None else AdmissionController(
        assumed_peak_items=config.ASSUMED_PEAK_ITEMS,
        window_seconds=config.ADMISSION_WINDOW_SECONDS,
    )
    scraper = scraper if scraper is not None else ReviewScraper.from_config(pool, admission)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {config.APP_NAME} v{config.APP_VERSION}")
        await pool.open()
        try:
            yield
        finally:
            logger.info(f"Shutting down {config.APP_NAME}")
            await pool.close()

    # Create FastAPI app with metadata
    app = FastAPI(
        title=config.APP_NAME,
        description=config.APP_DESCRIPTION,
        version=config.APP_VERSION,
        debug=debug,
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
        lifespan=lifespan,
    )

    app.state.pool = pool
    app.state.admission = admission
    app.state.scraper = scraper
    app.state.api_key = api_key if api_key is not None else config.API_KEY

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add request logging middleware
    app.add_middleware(BaseHTTPMiddleware, dispatch=log_request_middleware)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": config.APP_VERSION,
            "pool": app.state.pool.stats(),
            "admission": {
                "quota": app.state.admission.quota,
                "window_seconds": app.state.admission.window_seconds,
            },
        }

    logger.info(f"FastAPI app created - {config.APP_NAME} v{config.APP_VERSION}")
    return app
