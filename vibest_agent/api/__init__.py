"""API package exposing session operations over HTTP and SSE."""

from __future__ import annotations

from vibest_agent.api.deps import get_registry, require_token
from vibest_agent.api.router import api_router

__all__ = ["api_router", "get_registry", "require_token"]
