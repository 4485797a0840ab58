"""Registry of live agent sessions."""

from __future__ import annotations

import uuid
from typing import Any, AsyncIterator

import structlog

from vibest_agent.engine.base import EngineFactory
from vibest_agent.errors import NotFoundError
from vibest_agent.models import PermissionDecision, PermissionRequest
from vibest_agent.queue import PushQueue
from vibest_agent.session import AgentSession

logger = structlog.get_logger(__name__)


class SessionRegistry:
    """Live sessions keyed by session id.

    Constructed explicitly and handed to whatever needs it (the FastAPI app
    keeps one on ``app.state``), so independent registries never share
    sessions. Only ``create`` and ``abort`` write the map.
    """

    def __init__(self, engine_factory: EngineFactory) -> None:
        self._engine_factory = engine_factory
        self._sessions: dict[str, AgentSession] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(self) -> str:
        """Start a new session with its own engine and return its id.

        Raises:
            EngineStartError: The engine failed to start; nothing is stored.
        """
        session_id = f"sess_{uuid.uuid4().hex}"
        session = AgentSession(session_id)
        await session.start(self._engine_factory)
        self._sessions[session_id] = session
        logger.info("Session created", session_id=session_id, live_sessions=len(self._sessions))
        return session_id

    def get(self, session_id: str) -> AgentSession:
        """Fetch a live session.

        Raises:
            NotFoundError: No live session has this id.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def list(self) -> list[AgentSession]:
        """Return all live sessions."""
        return list(self._sessions.values())

    def prompt(
        self, session_id: str, message: dict[str, Any], *, model: str | None = None
    ) -> AsyncIterator[Any]:
        """Return the output stream for one user turn.

        The lookup happens immediately, so an unknown id fails before any
        iteration starts.
        """
        return self.get(session_id).prompt(message, model=model)

    async def abort(self, session_id: str) -> None:
        """Remove and terminate a session.

        The session leaves the map before teardown begins, so a second abort
        raises ``NotFoundError``.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        await session.abort()

    async def abort_all(self) -> int:
        """Abort every live session (used at shutdown). Returns the count."""
        session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.abort(session_id)
        return len(session_ids)

    async def interrupt(self, session_id: str) -> None:
        await self.get(session_id).interrupt()

    def respond_permission(
        self, session_id: str, request_id: str, decision: PermissionDecision
    ) -> bool:
        """Answer a pending permission request of a session.

        Raises:
            NotFoundError: Unknown session or request id.
            DecisionAlreadyResolvedError: The request was already settled.
        """
        return self.get(session_id).respond_permission(request_id, decision)

    def permission_requests(self, session_id: str) -> PushQueue[PermissionRequest]:
        """Return the session's permission request stream (one reader at a time)."""
        return self.get(session_id).permission_requests

    async def set_model(self, session_id: str, model: str | None) -> None:
        await self.get(session_id).set_model(model)

    async def supported_commands(self, session_id: str) -> list[dict[str, Any]]:
        return await self.get(session_id).supported_commands()

    async def supported_models(self, session_id: str) -> list[dict[str, Any]]:
        return await self.get(session_id).supported_models()

    async def mcp_servers(self, session_id: str) -> list[dict[str, Any]]:
        return await self.get(session_id).mcp_servers()
