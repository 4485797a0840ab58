"""Dependency helpers for API endpoints."""

from __future__ import annotations

from fastapi import Request

from vibest_agent.api.errors import UnauthorizedError
from vibest_agent.registry import SessionRegistry


async def require_token(request: Request) -> None:
    """Enforce bearer token auth when configured.

    Args:
        request: Incoming request to validate.
    """
    token = request.app.state.agent_token
    if not token:
        return
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        # Drain request body to avoid hanging ASGI clients on early auth failure.
        await request.body()
        raise UnauthorizedError("Missing or invalid bearer token")
    value = auth.split(" ", 1)[1]
    if value != token:
        await request.body()
        raise UnauthorizedError("Missing or invalid bearer token")


def get_registry(request: Request) -> SessionRegistry:
    """Return the session registry owned by the running app."""
    return request.app.state.registry
