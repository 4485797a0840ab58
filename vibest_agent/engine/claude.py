"""Engine adapter over the Claude Agent SDK (Claude Code CLI subprocess)."""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import Any, AsyncIterable, AsyncIterator

import structlog

from claude_agent_sdk import (
    ClaudeAgentOptions,
    ClaudeSDKClient,
    PermissionResultAllow,
    PermissionResultDeny,
    ResultMessage,
    SystemMessage,
)

from vibest_agent.engine.base import MessageKind, PermissionCallback
from vibest_agent.models import PermissionAllow, PermissionDecision

logger = structlog.get_logger(__name__)

# SDK message class name -> wire type tag
_MESSAGE_TYPES = {
    "SystemMessage": "system",
    "AssistantMessage": "assistant",
    "UserMessage": "user",
    "ResultMessage": "result",
    "StreamEvent": "stream_event",
}


def _to_dict(value: Any) -> Any:
    """Convert SDK dataclasses (permission updates, blocks) to plain dicts."""
    if isinstance(value, dict):
        return value
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def to_sdk_result(
    decision: PermissionDecision,
) -> PermissionResultAllow | PermissionResultDeny:
    """Translate a session decision into the SDK's permission result."""
    if isinstance(decision, PermissionAllow):
        return PermissionResultAllow(updated_input=decision.updated_input)
    return PermissionResultDeny(message=decision.message, interrupt=decision.interrupt)


class ClaudeEngine:
    """Agent engine backed by ``ClaudeSDKClient`` in streaming-input mode.

    The session's input queue is handed to the client as the prompt stream,
    so the CLI's stdin stays open for the whole session and every pushed
    user turn starts a new turn. Tool permission checks are routed through
    ``can_use_tool`` to the session's permission callback.
    """

    def __init__(
        self,
        input_stream: AsyncIterable[dict[str, Any]],
        on_permission: PermissionCallback,
        *,
        permission_mode: str = "default",
        setting_sources: list[str] | None = None,
        cwd: str | None = None,
        cli_path: str | None = None,
    ) -> None:
        self._input_stream = input_stream
        self._on_permission = on_permission
        self._init_data: dict[str, Any] = {}

        def stderr_handler(line: str) -> None:
            logger.debug("CLI stderr", line=line)

        self.options = ClaudeAgentOptions(
            mcp_servers={},
            permission_mode=permission_mode,
            # Keep Claude Code behaviour with the preset system prompt
            system_prompt={"type": "preset", "preset": "claude_code"},
            setting_sources=setting_sources,
            cwd=Path(cwd) if cwd else None,
            cli_path=cli_path or None,
            stderr=stderr_handler,
            can_use_tool=self._can_use_tool,
        )
        self._client = ClaudeSDKClient(options=self.options)

    async def start(self) -> None:
        logger.info(
            "Connecting Claude client",
            permission_mode=self.options.permission_mode,
            cwd=str(self.options.cwd) if self.options.cwd else None,
        )
        await self._client.connect(prompt=self._input_stream)

    async def messages(self) -> AsyncIterator[Any]:
        async for message in self._client.receive_messages():
            if isinstance(message, SystemMessage) and message.subtype == "init":
                self._init_data = dict(message.data or {})
            yield message

    def classify(self, message: Any) -> tuple[MessageKind, str | None]:
        if isinstance(message, SystemMessage) and message.subtype == "init":
            return MessageKind.INIT, (message.data or {}).get("session_id")
        if isinstance(message, ResultMessage):
            return MessageKind.RESULT, None
        return MessageKind.OTHER, None

    def encode(self, message: Any) -> dict[str, Any]:
        payload = _to_dict(message)
        if not isinstance(payload, dict):
            payload = {"value": repr(message)}
        message_type = _MESSAGE_TYPES.get(type(message).__name__, "unknown")
        return {"type": message_type, **payload}

    async def interrupt(self) -> None:
        await self._client.interrupt()

    async def set_model(self, model: str | None) -> None:
        await self._client.set_model(model)

    async def supported_commands(self) -> list[dict[str, Any]]:
        info = await self._client.get_server_info() or {}
        return list(info.get("commands", []))

    async def supported_models(self) -> list[dict[str, Any]]:
        info = await self._client.get_server_info() or {}
        return list(info.get("models", []))

    async def mcp_server_status(self) -> list[dict[str, Any]]:
        get_mcp_status = getattr(self._client, "get_mcp_status", None)
        if get_mcp_status is None:
            # Older SDKs only report MCP servers in the init message
            return list(self._init_data.get("mcp_servers", []))
        status = await get_mcp_status()
        if isinstance(status, dict):
            return list(status.get("mcpServers", status.get("mcp_servers", [])))
        return [_to_dict(item) for item in status]

    async def close(self) -> None:
        await self._client.disconnect()

    async def _can_use_tool(
        self, tool_name: str, tool_input: dict[str, Any], context: Any
    ) -> PermissionResultAllow | PermissionResultDeny:
        signal = getattr(context, "signal", None)
        suggestions = [_to_dict(s) for s in getattr(context, "suggestions", None) or []]
        decision = await self._on_permission(
            tool_name,
            tool_input,
            signal=signal if isinstance(signal, asyncio.Event) else None,
            suggestions=suggestions or None,
        )
        return to_sdk_result(decision)
