"""Exception taxonomy for the session core."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for errors raised by the session core.

    Every subclass carries a stable ``code`` that the HTTP layer surfaces in
    the error envelope.
    """

    code: str = "SESSION_ERROR"


class NotFoundError(SessionError):
    """Unknown session id or permission request id."""

    code = "NOT_FOUND"


class InvalidStateError(SessionError):
    """Operation is not valid in the current state."""

    code = "INVALID_STATE"


class DecisionAlreadyResolvedError(InvalidStateError):
    """A permission decision was already resolved by another path."""


class SessionBusyError(InvalidStateError):
    """Another prompt is already draining the session's output."""


class QueueEndedError(InvalidStateError):
    """Push attempted on a queue that has ended."""


class EngineStartError(SessionError):
    """The agent engine could not be constructed or started."""

    code = "ENGINE_START_FAILED"


class EngineStreamError(SessionError):
    """The engine's output sequence raised mid-turn."""

    code = "ENGINE_STREAM_ERROR"
