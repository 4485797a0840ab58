"""Pydantic request/response models for API endpoints."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from vibest_agent.models import PermissionDecision, SessionState, WireModel

INSPECTOR_PREFIX = "i am current inspect target: "


# --- Request Models ---


class MessagePart(BaseModel):
    """One part of a chat UI message.

    ``text`` parts carry plain text; ``data-inspector`` parts carry the
    source locations the user picked in the page inspector.
    """

    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None
    data: Any = None


class UserMessagePayload(WireModel):
    """User message as sent by the chat UI."""

    role: Literal["user"] = "user"
    parts: list[MessagePart] = []

    def to_engine_message(self) -> dict[str, Any]:
        """Convert UI parts into an engine user message with text blocks."""
        content: list[dict[str, str]] = []
        for part in self.parts:
            if part.type == "text" and part.text:
                content.append({"type": "text", "text": part.text})
            elif part.type == "data-inspector":
                targets = part.data if isinstance(part.data, list) else [part.data]
                locations = ", ".join(
                    f"@{t.get('file')}:{t.get('line')}:{t.get('column')}"
                    for t in targets
                    if isinstance(t, dict)
                )
                if locations:
                    content.append({"type": "text", "text": f"{INSPECTOR_PREFIX}{locations}"})
        return {"role": "user", "content": content}


class PromptRequest(WireModel):
    """Request body for prompting a session."""

    message: UserMessagePayload
    model: str | None = None


class RespondPermissionRequest(WireModel):
    """Request body answering a permission request."""

    decision: PermissionDecision


# --- Response Models ---


class CreateSessionResponse(WireModel):
    """Identifier of a newly created session."""

    session_id: str


class SessionSummary(WireModel):
    """Live session info returned by the list endpoint."""

    session_id: str
    engine_session_id: str | None
    state: SessionState
    busy: bool
    pending_permissions: int


class OkResponse(BaseModel):
    """Simple success response."""

    ok: bool = True


class HealthResponse(BaseModel):
    """Health check response."""

    ok: bool
    version: str
    protocol: int
    sessions: int
