"""Helpers for producing server-sent event (SSE) responses."""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator

import structlog
from starlette.responses import StreamingResponse

from vibest_agent.errors import SessionError
from vibest_agent.models import PermissionRequest
from vibest_agent.queue import PushQueue
from vibest_agent.session import AgentSession

logger = structlog.get_logger(__name__)

SSE_KEEPALIVE_SECONDS = 15.0


def sse_event(data: dict) -> str:
    """Serialize an event payload into SSE wire format."""
    payload = json.dumps(data, separators=(",", ":"), default=str)
    return f"data: {payload}\n\n"


async def prompt_stream(
    session: AgentSession, messages: AsyncIterator[Any]
) -> AsyncIterator[bytes]:
    """Stream one turn of engine output as SSE events.

    Errors raised by the session core end the stream with an ``error`` event
    rather than a broken connection; the session itself stays open.
    """
    try:
        async for message in messages:
            yield sse_event(session.encode(message)).encode("utf-8")
    except SessionError as exc:
        logger.warning("Prompt stream failed", session_id=session.id, code=exc.code)
        yield sse_event(
            {"type": "error", "code": exc.code, "message": str(exc)}
        ).encode("utf-8")
    finally:
        await messages.aclose()


async def _next_request(queue: PushQueue[PermissionRequest]) -> PermissionRequest | None:
    async for request in queue:
        return request
    return None


async def permission_stream(
    queue: PushQueue[PermissionRequest], *, keepalive_s: float = SSE_KEEPALIVE_SECONDS
) -> AsyncIterator[bytes]:
    """Stream permission requests until the session's queue ends."""
    while True:
        try:
            request = await asyncio.wait_for(_next_request(queue), timeout=keepalive_s)
        except asyncio.TimeoutError:
            yield b": keepalive\n\n"
            continue
        if request is None:
            return
        yield sse_event(request.model_dump(by_alias=True, mode="json")).encode("utf-8")


def stream_response(body: AsyncIterator[bytes]) -> StreamingResponse:
    """Wrap an SSE byte stream in a StreamingResponse."""
    return StreamingResponse(body, media_type="text/event-stream")
