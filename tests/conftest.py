"""Shared pytest fixtures for vibest agent tests."""

import os
from typing import AsyncGenerator

import httpx
import pytest

# Dev mode disables the bearer token requirement
os.environ["VIBEST_AGENT_DEV_MODE"] = "1"
os.environ.pop("VIBEST_AGENT_TOKEN", None)

from fastapi import FastAPI

from vibest_agent.main import create_app
from vibest_agent.registry import SessionRegistry

from fakes import FakeEngine


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Force the AnyIO pytest plugin to run tests under asyncio.

    The session core uses asyncio primitives directly (futures, events,
    tasks), which are incompatible with the trio backend.
    """
    return "asyncio"


@pytest.fixture
def registry() -> SessionRegistry:
    """Fresh registry backed by scripted engines."""
    return SessionRegistry(FakeEngine)


@pytest.fixture
def app() -> FastAPI:
    """App with its own registry backed by scripted engines."""
    return create_app(engine_factory=FakeEngine)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client bound to the app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
