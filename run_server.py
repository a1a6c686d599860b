#!/usr/bin/env python3
"""Start the web research API with uvicorn.

Host and port default to the HOST/PORT environment variables so the same
entry point works locally and in a container.
"""

import argparse
import os

import uvicorn

from config.config import load_env_file


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Web Research API Server")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"), help="Host to bind to")
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("PORT", "8000")), help="Port to bind to"
    )
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    parser.add_argument(
        "--log-level",
        default=os.getenv("UVICORN_LOG_LEVEL", "info"),
        choices=["critical", "error", "warning", "info", "debug"],
        help="uvicorn access/error log level (application logs use LOG_LEVEL)",
    )
    return parser.parse_args()


def main() -> None:
    load_env_file()
    args = parse_args()
    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
