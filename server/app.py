"""FastAPI application factory."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.config import load_env_file
from db.engine import init_db
from server.middleware import RequestIDMiddleware
from server.routes import health, research
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown logic."""
    logger.info("FastAPI server starting up")
    init_db()

    required_keys = ["OPENAI_API_KEY", "TAVILY_API_KEY"]
    missing = [k for k in required_keys if not os.getenv(k)]
    if missing:
        logger.warning(f"Missing environment variables: {missing}")

    yield

    logger.info("FastAPI server shutting down")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map body validation failures to the 400 ``{error: ...}`` shape."""
    errors = exc.errors()
    missing_body = any(tuple(err.get("loc", ())) == ("body",) for err in errors)
    query_error = any("query" in err.get("loc", ()) for err in errors)
    if missing_body or query_error:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": "query is required"}
        )

    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in errors
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid request", "details": details},
    )


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    load_env_file()

    app = FastAPI(
        title="Web Research API",
        description="Evidence-grounded keyword and cluster research for party decorations",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(health.router)
    app.include_router(research.router)

    return app
