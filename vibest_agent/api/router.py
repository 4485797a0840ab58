"""Composition of API routers."""

from __future__ import annotations

from fastapi import APIRouter

from vibest_agent.api.health import router as health_router
from vibest_agent.api.permissions import router as permissions_router
from vibest_agent.api.sessions import router as sessions_router

api_router = APIRouter(prefix="/api")
api_router.include_router(sessions_router)
api_router.include_router(permissions_router)
api_router.include_router(health_router)
