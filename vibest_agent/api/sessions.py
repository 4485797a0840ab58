"""Session lifecycle, prompt and metadata endpoints."""

from __future__ import annotations

from contextlib import contextmanager

import structlog
from fastapi import APIRouter, Depends
from starlette.responses import StreamingResponse

from vibest_agent.api.deps import get_registry, require_token
from vibest_agent.api.errors import InvalidRequestError
from vibest_agent.api.schemas import (
    CreateSessionResponse,
    OkResponse,
    PromptRequest,
    SessionSummary,
)
from vibest_agent.errors import SessionBusyError
from vibest_agent.models import McpServerStatus, ModelInfo, SlashCommand
from vibest_agent.registry import SessionRegistry
from vibest_agent.settings import settings
from vibest_agent.sse import prompt_stream, stream_response

router = APIRouter(tags=["sessions"], dependencies=[Depends(require_token)])
logger = structlog.get_logger(__name__)


@contextmanager
def _session_logging_context(session_id: str):
    structlog.contextvars.bind_contextvars(session_id=session_id)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("session_id")


@router.post("/sessions", response_model=CreateSessionResponse, status_code=201)
async def create_session(
    registry: SessionRegistry = Depends(get_registry),
) -> CreateSessionResponse:
    """Start a new session backed by its own engine."""
    session_id = await registry.create()
    with _session_logging_context(session_id):
        logger.info("Session created")
        return CreateSessionResponse(session_id=session_id)


@router.get("/sessions", response_model=list[SessionSummary])
async def list_sessions(
    registry: SessionRegistry = Depends(get_registry),
) -> list[SessionSummary]:
    """List live sessions."""
    sessions = registry.list()
    logger.info("Listed sessions", count=len(sessions))
    return [
        SessionSummary(
            session_id=session.id,
            engine_session_id=session.engine_session_id,
            state=session.state,
            busy=session.busy,
            pending_permissions=len(session.pending),
        )
        for session in sessions
    ]


@router.delete("/sessions/{session_id}", response_model=OkResponse)
async def abort_session(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> OkResponse:
    """Abort a session: deny pending permissions, stop the engine, forget it."""
    with _session_logging_context(session_id):
        await registry.abort(session_id)
        logger.info("Session aborted")
        return OkResponse()


@router.post("/sessions/{session_id}/interrupt", response_model=OkResponse)
async def interrupt_session(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> OkResponse:
    """Interrupt the current turn. The session stays usable."""
    with _session_logging_context(session_id):
        await registry.interrupt(session_id)
        logger.info("Session interrupted")
        return OkResponse()


@router.get("/sessions/{session_id}/commands", response_model=list[SlashCommand])
async def get_supported_commands(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> list[SlashCommand]:
    """Slash commands the session's engine supports."""
    with _session_logging_context(session_id):
        commands = await registry.supported_commands(session_id)
        return [SlashCommand.model_validate(command) for command in commands]


@router.get("/sessions/{session_id}/models", response_model=list[ModelInfo])
async def get_supported_models(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> list[ModelInfo]:
    """Models the session's engine can switch to."""
    with _session_logging_context(session_id):
        models = await registry.supported_models(session_id)
        return [ModelInfo.model_validate(model) for model in models]


@router.get("/sessions/{session_id}/mcp-servers", response_model=list[McpServerStatus])
async def get_mcp_servers(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> list[McpServerStatus]:
    """Status of the MCP servers attached to the session's engine."""
    with _session_logging_context(session_id):
        servers = await registry.mcp_servers(session_id)
        return [McpServerStatus.model_validate(server) for server in servers]


@router.post("/sessions/{session_id}/prompt")
async def prompt_session(
    session_id: str,
    payload: PromptRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> StreamingResponse:
    """Send a user turn and stream engine output (SSE) until the turn's result."""
    with _session_logging_context(session_id):
        session = registry.get(session_id)
        if session.busy:
            raise SessionBusyError(f"Session {session_id} already has a prompt in progress")
        message = payload.message.to_engine_message()
        if not message["content"]:
            raise InvalidRequestError("Message has no text content")
        model = payload.model or settings.default_model()
        logger.info("Prompt received", model=model, blocks=len(message["content"]))
        messages = registry.prompt(session_id, message, model=model)
        return stream_response(prompt_stream(session, messages))
