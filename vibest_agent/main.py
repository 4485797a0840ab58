"""FastAPI application entrypoint for the agent server."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vibest_agent.api import api_router
from vibest_agent.engine import EngineFactory, get_engine_factory
from vibest_agent.errors import SessionError
from vibest_agent.log_config import configure_logging
from vibest_agent.middleware import (
    http_exception_handler,
    request_logging_middleware,
    session_error_handler,
    validation_exception_handler,
)
from vibest_agent.registry import SessionRegistry
from vibest_agent.settings import settings

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Agent server starting", host=settings.host(), port=settings.port())
    try:
        yield
    finally:
        aborted = await app.state.registry.abort_all()
        logger.info("Agent server stopped", aborted_sessions=aborted)


def create_app(engine_factory: EngineFactory | None = None) -> FastAPI:
    """Build the app with its own session registry.

    Args:
        engine_factory: Builds one engine per session. Defaults to the
            Claude engine configured from settings.
    """
    app = FastAPI(lifespan=lifespan)
    app.state.registry = SessionRegistry(engine_factory or get_engine_factory())
    app.state.agent_token = "" if settings.dev_mode() else settings.token()

    app.middleware("http")(request_logging_middleware)
    app.add_exception_handler(SessionError, session_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api_router)
    return app


def run() -> None:
    """Entry point for the vibest-agent console script."""
    configure_logging()
    uvicorn.run(
        "vibest_agent.main:create_app",
        factory=True,
        host=settings.host(),
        port=settings.port(),
        log_config=None,
        reload=False,
    )


if __name__ == "__main__":
    run()
