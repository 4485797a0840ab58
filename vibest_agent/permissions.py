"""Pending permission decisions keyed by request id."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass

import structlog

from vibest_agent.errors import DecisionAlreadyResolvedError, NotFoundError
from vibest_agent.models import PermissionDecision, PermissionDeny

logger = structlog.get_logger(__name__)


def new_request_id() -> str:
    """Return a fresh permission request id backed by 122 random bits."""
    return f"perm_{uuid.uuid4().hex}"


@dataclass
class _PendingDecision:
    tool_name: str
    future: asyncio.Future
    watcher: asyncio.Task | None = None


class PendingDecisions:
    """One-shot continuations for tool permission requests of one session.

    Each entry is settled exactly once, by whichever of an explicit response,
    a session-wide denial or the engine's cancellation signal comes first.
    Settling removes the entry and detaches its signal watcher; ids that
    were settled are remembered so a late second attempt is rejected rather
    than reported as unknown.
    """

    def __init__(self, session_id: str) -> None:
        self._session_id = session_id
        self._pending: dict[str, _PendingDecision] = {}
        # Settled ids, kept for the session's lifetime (one short string per
        # tool call) and dropped with the session.
        self._resolved: set[str] = set()

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def ids(self) -> list[str]:
        """Return outstanding request ids in insertion order."""
        return list(self._pending)

    def open(
        self, tool_name: str, *, signal: asyncio.Event | None = None
    ) -> tuple[str, asyncio.Future]:
        """Register a new pending decision.

        Args:
            tool_name: Tool the engine wants to use (for logging and the
                synthesized denial message).
            signal: Optional per-attempt cancellation signal. If it fires
                before the decision is otherwise settled, the decision
                becomes a deny with ``interrupt=True``.

        Returns:
            The request id and a future resolved with the decision.
        """
        request_id = new_request_id()
        while request_id in self._pending or request_id in self._resolved:
            request_id = new_request_id()

        future = asyncio.get_running_loop().create_future()
        entry = _PendingDecision(tool_name=tool_name, future=future)
        self._pending[request_id] = entry

        if signal is not None:
            if signal.is_set():
                self._settle(request_id, self._aborted_decision(tool_name))
            else:
                entry.watcher = asyncio.ensure_future(signal.wait())
                entry.watcher.add_done_callback(
                    lambda task, rid=request_id: self._on_signal(rid, task)
                )
        return request_id, future

    def resolve(self, request_id: str, decision: PermissionDecision) -> None:
        """Settle a pending decision with the caller's answer.

        Raises:
            NotFoundError: No such request was ever opened.
            DecisionAlreadyResolvedError: The request was already settled.
        """
        if request_id not in self._pending:
            if request_id in self._resolved:
                logger.warning(
                    "Permission decision already resolved",
                    session_id=self._session_id,
                    request_id=request_id,
                )
                raise DecisionAlreadyResolvedError(
                    f"Permission request {request_id} was already resolved"
                )
            raise NotFoundError(f"Pending tool permission request {request_id} not found")
        self._settle(request_id, decision)

    def cancel(self, request_id: str, message: str) -> bool:
        """Deny-and-interrupt a request if it is still pending."""
        if request_id not in self._pending:
            return False
        self._settle(request_id, PermissionDeny(message=message, interrupt=True))
        return True

    def deny_all(self, message: str) -> int:
        """Deny-and-interrupt every outstanding request. Returns the count."""
        request_ids = list(self._pending)
        for request_id in request_ids:
            self._settle(request_id, PermissionDeny(message=message, interrupt=True))
        return len(request_ids)

    def _on_signal(self, request_id: str, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        entry = self._pending.get(request_id)
        if entry is None:
            return
        logger.info(
            "Permission request cancelled by engine signal",
            session_id=self._session_id,
            request_id=request_id,
            tool_name=entry.tool_name,
        )
        self._settle(request_id, self._aborted_decision(entry.tool_name))

    def _settle(self, request_id: str, decision: PermissionDecision) -> None:
        entry = self._pending.pop(request_id)
        self._resolved.add(request_id)
        if entry.watcher is not None and not entry.watcher.done():
            entry.watcher.cancel()
        if not entry.future.done():
            entry.future.set_result(decision)

    @staticmethod
    def _aborted_decision(tool_name: str) -> PermissionDeny:
        return PermissionDeny(
            message=f"Tool permission for {tool_name} was aborted",
            interrupt=True,
        )
