"""Pydantic models for session payloads and engine metadata."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for payloads exchanged with remote callers (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionState(str, Enum):
    """Lifecycle states for an agent session."""
    ACTIVE = "active"
    ABORTED = "aborted"


class PermissionAllow(WireModel):
    """Let the tool call proceed, optionally with a rewritten input."""

    behavior: Literal["allow"] = "allow"
    updated_input: dict[str, Any] | None = None


class PermissionDeny(WireModel):
    """Refuse the tool call.

    With ``interrupt`` set the engine abandons the whole turn instead of
    skipping just this call.
    """

    behavior: Literal["deny"] = "deny"
    message: str = ""
    interrupt: bool = False


PermissionDecision = Annotated[
    Union[PermissionAllow, PermissionDeny], Field(discriminator="behavior")
]


class PermissionRequest(WireModel):
    """Tool permission request raised by the engine for the caller to answer."""

    type: Literal["tool-permission-request"] = "tool-permission-request"
    session_id: str
    request_id: str
    tool_name: str
    input: dict[str, Any]
    suggestions: list[dict[str, Any]] | None = None


class SlashCommand(WireModel):
    """Slash command advertised by the engine."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str
    description: str = ""
    argument_hint: str = ""


class ModelInfo(WireModel):
    """Model selectable through ``set_model``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    value: str
    display_name: str = ""
    description: str = ""


class McpServerStatus(WireModel):
    """Connection status of an MCP server attached to the engine."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str
    status: str
    server_info: dict[str, Any] | None = None


class ErrorDetail(BaseModel):
    """Structured error payload for API responses."""
    code: str
    message: str
    details: Any | None = None


class ErrorResponse(BaseModel):
    """Envelope for API error responses."""
    error: ErrorDetail
