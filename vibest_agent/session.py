"""Agent session: one engine, its queues and its pending permission decisions."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

import structlog

from vibest_agent.engine.base import AgentEngine, EngineFactory, MessageKind
from vibest_agent.errors import (
    EngineStartError,
    EngineStreamError,
    InvalidStateError,
    SessionBusyError,
)
from vibest_agent.models import (
    PermissionDecision,
    PermissionDeny,
    PermissionRequest,
    SessionState,
)
from vibest_agent.permissions import PendingDecisions
from vibest_agent.queue import PushQueue

logger = structlog.get_logger(__name__)

SESSION_TERMINATED = "session terminated"

# Returned by the output cursor once the engine output is exhausted.
_OUTPUT_END: Any = object()


class AgentSession:
    """Owns one engine instance for the lifetime of a conversation.

    Three flows meet here: user turns pushed onto ``input`` (read by the
    engine), engine output pulled through a single shared cursor by
    ``prompt``, and permission requests raised by the engine onto
    ``permission_requests`` and answered through ``pending``.
    """

    def __init__(self, session_id: str) -> None:
        self.id = session_id
        # Reported by the engine in its init message; diagnostics only
        self.engine_session_id: str | None = None
        self.state = SessionState.ACTIVE
        self.input: PushQueue[dict[str, Any]] = PushQueue()
        self.permission_requests: PushQueue[PermissionRequest] = PushQueue()
        self.pending = PendingDecisions(session_id)
        self._engine: AgentEngine | None = None
        self._output: AsyncIterator[Any] | None = None
        # Pending read of the output cursor; outlives a cancelled prompt
        self._next_output: asyncio.Future | None = None
        self._prompt_active = False

    @property
    def engine(self) -> AgentEngine:
        if self._engine is None:
            raise InvalidStateError(f"Session {self.id} has no running engine")
        return self._engine

    @property
    def busy(self) -> bool:
        """True while a prompt is draining the engine output."""
        return self._prompt_active

    async def start(self, engine_factory: EngineFactory) -> None:
        """Build and start the engine wired to this session's queues.

        Raises:
            EngineStartError: The engine could not be built or started.
        """
        try:
            engine = engine_factory(self.input, self.request_permission)
            await engine.start()
        except Exception as exc:
            logger.exception("Engine failed to start", session_id=self.id)
            self.permission_requests.end()
            self.input.end()
            raise EngineStartError(f"Failed to start agent engine: {exc}") from exc
        self._engine = engine
        self._output = aiter(engine.messages())

    async def request_permission(
        self,
        tool_name: str,
        tool_input: dict[str, Any],
        *,
        signal: asyncio.Event | None = None,
        suggestions: list[dict[str, Any]] | None = None,
    ) -> PermissionDecision:
        """Permission callback handed to the engine.

        Queues a ``PermissionRequest`` for the caller and suspends the
        engine's tool call until the decision is settled.
        """
        if self.state is SessionState.ABORTED:
            return PermissionDeny(message=SESSION_TERMINATED, interrupt=True)

        request_id, future = self.pending.open(tool_name, signal=signal)
        logger.info(
            "Permission requested",
            session_id=self.id,
            request_id=request_id,
            tool_name=tool_name,
        )
        if not future.done():
            self.permission_requests.push(
                PermissionRequest(
                    session_id=self.id,
                    request_id=request_id,
                    tool_name=tool_name,
                    input=tool_input,
                    suggestions=suggestions,
                )
            )
        try:
            decision = await asyncio.shield(future)
        except asyncio.CancelledError:
            self.pending.cancel(request_id, f"Tool permission for {tool_name} was aborted")
            logger.info(
                "Permission request cancelled",
                session_id=self.id,
                request_id=request_id,
            )
            raise
        logger.info(
            "Permission decided",
            session_id=self.id,
            request_id=request_id,
            behavior=decision.behavior,
        )
        return decision

    def respond_permission(self, request_id: str, decision: PermissionDecision) -> bool:
        """Answer a pending permission request.

        Raises:
            NotFoundError: Unknown request id.
            DecisionAlreadyResolvedError: The request was already settled.
        """
        self.pending.resolve(request_id, decision)
        return True

    async def prompt(
        self, message: dict[str, Any], *, model: str | None = None
    ) -> AsyncIterator[Any]:
        """Send one user turn and yield engine output until its result.

        The init message (if any) records ``engine_session_id``. The result
        message is yielded last and ends the generator; the session stays
        usable. If the engine output ends without a result the generator
        simply stops.

        Raises:
            SessionBusyError: Another prompt is draining the output.
            EngineStreamError: The engine output raised mid-turn. The
                session stays active; retrying or aborting is up to the
                caller.
        """
        if self.state is SessionState.ABORTED:
            raise InvalidStateError(f"Session {self.id} was aborted")
        if self._prompt_active:
            raise SessionBusyError(f"Session {self.id} already has a prompt in progress")
        engine = self.engine
        self._prompt_active = True
        try:
            if model:
                await engine.set_model(model)
            self.input.push(
                {
                    "type": "user",
                    "message": message,
                    "parent_tool_use_id": None,
                    "session_id": self.id,
                }
            )
            while True:
                try:
                    item = await self._read_output()
                except Exception as exc:
                    logger.exception("Engine output failed", session_id=self.id)
                    raise EngineStreamError(f"Agent engine stream failed: {exc}") from exc
                if item is _OUTPUT_END:
                    logger.info("Engine output ended without a result", session_id=self.id)
                    return

                kind, correlation_id = engine.classify(item)
                if kind is MessageKind.INIT:
                    if correlation_id:
                        self.engine_session_id = correlation_id
                    logger.info(
                        "Engine initialized",
                        session_id=self.id,
                        engine_session_id=self.engine_session_id,
                    )
                yield item
                if kind is MessageKind.RESULT:
                    return
        finally:
            self._prompt_active = False

    async def _read_output(self) -> Any:
        """Read the next engine output item, or ``_OUTPUT_END``.

        The read runs as its own task and is awaited through a shield, so a
        prompt cancelled mid-read (a disconnected client) leaves the engine's
        output generator intact. The next prompt picks up the same read.
        """
        if self._next_output is None:
            self._next_output = asyncio.ensure_future(anext(self._output, _OUTPUT_END))
        pending = self._next_output
        try:
            item = await asyncio.shield(pending)
        except asyncio.CancelledError:
            if pending.cancelled():
                self._next_output = None
            raise
        except Exception:
            self._next_output = None
            raise
        self._next_output = None
        return item

    async def interrupt(self) -> None:
        """Stop the current turn only; pending decisions are left alone."""
        logger.info("Interrupting session", session_id=self.id)
        await self.engine.interrupt()

    async def set_model(self, model: str | None) -> None:
        await self.engine.set_model(model)

    async def supported_commands(self) -> list[dict[str, Any]]:
        return await self.engine.supported_commands()

    async def supported_models(self) -> list[dict[str, Any]]:
        return await self.engine.supported_models()

    async def mcp_servers(self) -> list[dict[str, Any]]:
        return await self.engine.mcp_server_status()

    def encode(self, message: Any) -> dict[str, Any]:
        return self.engine.encode(message)

    async def abort(self) -> None:
        """Terminate the session.

        Denies every pending decision with ``interrupt=True``, ends both
        queues and stops the engine. Engine failures while stopping are
        logged; the session is terminal either way.
        """
        if self.state is SessionState.ABORTED:
            return
        self.state = SessionState.ABORTED
        denied = self.pending.deny_all(SESSION_TERMINATED)
        self.permission_requests.end()
        self.input.end()
        if self._engine is not None:
            try:
                await self._engine.interrupt()
            except Exception:
                logger.warning("Engine interrupt failed during abort", session_id=self.id, exc_info=True)
            try:
                await self._engine.close()
            except Exception:
                logger.warning("Engine close failed during abort", session_id=self.id, exc_info=True)
        logger.info("Session aborted", session_id=self.id, denied_permissions=denied)
