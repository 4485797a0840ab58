"""Engine selection for new sessions."""

from __future__ import annotations

from functools import partial

from vibest_agent.engine.base import AgentEngine, EngineFactory, MessageKind, PermissionCallback
from vibest_agent.settings import settings

__all__ = [
    "AgentEngine",
    "EngineFactory",
    "MessageKind",
    "PermissionCallback",
    "get_engine_factory",
]


def get_engine_factory() -> EngineFactory:
    """Return a factory building Claude engines configured from settings.

    The factory is resolved once; each call to it builds one engine for one
    session. The SDK is imported lazily since it slows down startup.
    """
    from vibest_agent.engine.claude import ClaudeEngine

    return partial(
        ClaudeEngine,
        permission_mode=settings.permission_mode(),
        setting_sources=settings.setting_sources(),
        cwd=settings.cwd() or None,
        cli_path=settings.cli_path() or None,
    )
