"""Errors raised by the HTTP layer itself.

They share the ``SessionError`` handler so every failure leaves the server in
the same ``{"error": {...}}`` envelope.
"""

from __future__ import annotations

from vibest_agent.errors import SessionError


class UnauthorizedError(SessionError):
    """Missing or wrong bearer token."""

    code = "UNAUTHORIZED"


class InvalidRequestError(SessionError):
    """Well-formed body that still cannot be acted on (e.g. no prompt text)."""

    code = "VALIDATION_ERROR"
