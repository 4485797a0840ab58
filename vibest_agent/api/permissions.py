"""Permission handshake endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from starlette.responses import StreamingResponse

from vibest_agent.api.deps import get_registry, require_token
from vibest_agent.api.schemas import RespondPermissionRequest
from vibest_agent.registry import SessionRegistry
from vibest_agent.sse import permission_stream, stream_response

router = APIRouter(tags=["permissions"], dependencies=[Depends(require_token)])
logger = structlog.get_logger(__name__)


@router.get("/sessions/{session_id}/permissions")
async def stream_permission_requests(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> StreamingResponse:
    """Stream tool permission requests (SSE) until the session is aborted.

    Meant for a single reader per session: concurrent readers split the
    requests between them.
    """
    queue = registry.permission_requests(session_id)
    logger.info("Permission stream opened", session_id=session_id, buffered=len(queue))
    return stream_response(permission_stream(queue))


@router.post("/sessions/{session_id}/permissions/{request_id}", response_model=bool)
async def respond_permission(
    session_id: str,
    request_id: str,
    payload: RespondPermissionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> bool:
    """Answer a pending permission request. Each request accepts one answer."""
    ok = registry.respond_permission(session_id, request_id, payload.decision)
    logger.info(
        "Permission answered",
        session_id=session_id,
        request_id=request_id,
        behavior=payload.decision.behavior,
    )
    return ok
