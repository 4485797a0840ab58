"""Scripted engine and message builders shared by the tests."""

import asyncio
from typing import Any

from vibest_agent.engine.base import MessageKind
from vibest_agent.queue import PushQueue


class FakeEngine:
    """Scripted engine used in place of the Claude CLI.

    Tests feed output with ``emit`` (an Exception instance makes the stream
    raise) and raise permission requests with ``ask``, which runs the
    session's permission callback in its own task like the SDK does.
    """

    def __init__(self, input_stream, on_permission) -> None:
        self.input_stream = input_stream
        self.on_permission = on_permission
        self.output: PushQueue[Any] = PushQueue()
        self.started = False
        self.closed = False
        self.interrupts = 0
        self.models: list[str | None] = []
        self.commands = [
            {"name": "review", "description": "Review a pull request", "argumentHint": "<pr>"},
            {"name": "compact", "description": "Compact conversation", "argumentHint": ""},
        ]
        self.model_infos = [
            {"value": "sonnet", "displayName": "Sonnet", "description": "Fast and capable"},
            {"value": "opus", "displayName": "Opus", "description": "Most powerful"},
        ]
        self.mcp = [
            {"name": "filesystem", "status": "connected", "serverInfo": {"name": "fs", "version": "1.0.0"}},
        ]

    async def start(self) -> None:
        self.started = True

    async def messages(self):
        async for item in self.output:
            if isinstance(item, Exception):
                raise item
            yield item

    def classify(self, message: dict) -> tuple[MessageKind, str | None]:
        if message.get("type") == "system" and message.get("subtype") == "init":
            return MessageKind.INIT, message.get("session_id")
        if message.get("type") == "result":
            return MessageKind.RESULT, None
        return MessageKind.OTHER, None

    def encode(self, message: dict) -> dict:
        return dict(message)

    async def interrupt(self) -> None:
        self.interrupts += 1

    async def set_model(self, model: str | None) -> None:
        self.models.append(model)

    async def supported_commands(self) -> list[dict]:
        return list(self.commands)

    async def supported_models(self) -> list[dict]:
        return list(self.model_infos)

    async def mcp_server_status(self) -> list[dict]:
        return list(self.mcp)

    async def close(self) -> None:
        self.closed = True
        self.output.end()

    # --- test helpers ---

    def emit(self, *messages: Any) -> None:
        for message in messages:
            self.output.push(message)

    def ask(self, tool_name: str, tool_input: dict | None = None, **kwargs) -> asyncio.Task:
        return asyncio.create_task(
            self.on_permission(tool_name, tool_input or {}, **kwargs)
        )


class FailingEngine(FakeEngine):
    """Engine whose start always fails."""

    async def start(self) -> None:
        raise RuntimeError("claude CLI not found")


def init_message(engine_session_id: str = "claude-abc") -> dict:
    return {"type": "system", "subtype": "init", "session_id": engine_session_id}


def assistant_message(text: str) -> dict:
    return {"type": "assistant", "content": [{"type": "text", "text": text}]}


def result_message(result: str = "done") -> dict:
    return {"type": "result", "subtype": "success", "result": result, "is_error": False}
