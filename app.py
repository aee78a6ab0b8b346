# app.py - ReviewScrape server entry point

import argparse

import uvicorn

# Import our configuration
import config

# Import logging utilities
from utils.logging import get_logger

from web.app import create_app

# Setup logger
logger = get_logger("app")

app = create_app(debug=config.DEBUG)


def main():
    # Parse command line arguments
    parser = argparse.ArgumentParser(description=f"Start {config.APP_NAME} server")
    parser.add_argument("--host", default=config.HOST, help=f"Host to bind to (default: {config.HOST})")
    parser.add_argument("--port", type=int, default=config.PORT, help=f"Port to bind to (default: {config.PORT})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--https", action="store_true", default=config.USE_HTTPS,
                        help="Serve over TLS using SSL_CERTFILE and SSL_KEYFILE")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"], help="Log level")

    args = parser.parse_args()

    ssl_options = {}
    if args.https:
        ssl_options = {"ssl_certfile": config.SSL_CERTFILE, "ssl_keyfile": config.SSL_KEYFILE}

    scheme = "https" if args.https else "http"
    logger.info(f"Server running at {scheme}://{args.host}:{args.port}")

    uvicorn.run(
        "app:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
        **ssl_options
    )


# Main function to run the application
if __name__ == "__main__":
    main()
