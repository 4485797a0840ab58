"""Health endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from vibest_agent import __version__
from vibest_agent.api.deps import get_registry
from vibest_agent.api.schemas import HealthResponse
from vibest_agent.registry import SessionRegistry

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(registry: SessionRegistry = Depends(get_registry)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(ok=True, version=__version__, protocol=1, sessions=len(registry))
