"""Protocol definitions for agent engines and the permission callback."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Callable, Protocol

from vibest_agent.models import PermissionDecision


class MessageKind(str, Enum):
    """How the session core treats an engine output message."""
    INIT = "init"
    RESULT = "result"
    OTHER = "other"


class PermissionCallback(Protocol):
    """Hook the engine awaits before each tool use."""

    async def __call__(
        self,
        tool_name: str,
        tool_input: dict[str, Any],
        *,
        signal: asyncio.Event | None = None,
        suggestions: list[dict[str, Any]] | None = None,
    ) -> PermissionDecision: ...


class AgentEngine(Protocol):
    """Adapter interface for the process that runs the conversation."""

    async def start(self) -> None:
        """Launch the engine; it begins consuming its input stream."""
        ...

    def messages(self) -> AsyncIterator[Any]:
        """Return the engine's output sequence. Called once per session."""
        ...

    def classify(self, message: Any) -> tuple[MessageKind, str | None]:
        """Classify an output message.

        Returns the kind and, for init messages, the engine's own session id.
        """
        ...

    def encode(self, message: Any) -> dict[str, Any]:
        """Return a JSON-ready dict for an output message."""
        ...

    async def interrupt(self) -> None: ...

    async def set_model(self, model: str | None) -> None: ...

    async def supported_commands(self) -> list[dict[str, Any]]: ...

    async def supported_models(self) -> list[dict[str, Any]]: ...

    async def mcp_server_status(self) -> list[dict[str, Any]]: ...

    async def close(self) -> None:
        """Stop the engine and release its process."""
        ...


EngineFactory = Callable[
    [AsyncIterable[dict[str, Any]], PermissionCallback], AgentEngine
]
"""Builds an engine from the session's input stream and permission hook."""
