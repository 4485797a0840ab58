"""Centralized environment configuration for the vibest agent server.

All environment variables are read through this module using the VIBEST_AGENT_
prefix for consistency.

Usage:
    from vibest_agent.settings import settings

    if settings.dev_mode():
        ...
    port = settings.port()
"""

from __future__ import annotations

import os


def _get(name: str, default: str = "") -> str:
    """Get an environment variable value."""
    return os.environ.get(name, "").strip() or default


def _get_bool(name: str, default: bool = False) -> bool:
    """Get a boolean environment variable."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    return value.lower() in ("1", "true", "yes")


def _get_int(name: str, default: int = 0) -> int:
    """Get an integer environment variable."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_list(name: str, default: str = "") -> list[str]:
    """Get a comma-separated list environment variable."""
    raw = _get(name, default=default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings:
    """Centralized settings for the vibest agent server.

    Environment variables use the VIBEST_AGENT_ prefix.
    """

    # -------------------------------------------------------------------------
    # Server Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def dev_mode() -> bool:
        """Development mode disables token requirement.

        Env: VIBEST_AGENT_DEV_MODE
        """
        return _get_bool("VIBEST_AGENT_DEV_MODE")

    @staticmethod
    def token() -> str:
        """Bearer token for API authentication. Empty disables auth.

        Env: VIBEST_AGENT_TOKEN
        """
        return _get("VIBEST_AGENT_TOKEN")

    @staticmethod
    def host() -> str:
        """Host to bind the HTTP server to.

        Env: VIBEST_AGENT_HOST (default: 0.0.0.0)
        """
        return _get("VIBEST_AGENT_HOST", default="0.0.0.0")

    @staticmethod
    def port() -> int:
        """Port to bind the HTTP server to.

        Env: VIBEST_AGENT_PORT (default: 8787)
        """
        return _get_int("VIBEST_AGENT_PORT", default=8787)

    # -------------------------------------------------------------------------
    # Engine Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def default_model() -> str:
        """Model applied before a prompt when the caller does not pick one.

        Env: VIBEST_AGENT_DEFAULT_MODEL (default: sonnet)
        """
        return _get("VIBEST_AGENT_DEFAULT_MODEL", default="sonnet")

    @staticmethod
    def permission_mode() -> str:
        """Claude Code permission mode for new sessions.

        Env: VIBEST_AGENT_PERMISSION_MODE (default: default)

        Options: default, acceptEdits, plan, bypassPermissions. Anything other
        than ``default`` skips some or all permission requests.
        """
        return _get("VIBEST_AGENT_PERMISSION_MODE", default="default")

    @staticmethod
    def setting_sources() -> list[str]:
        """Claude Code settings files loaded by each engine.

        Env: VIBEST_AGENT_SETTING_SOURCES (default: user,project,local)
        """
        return _get_list("VIBEST_AGENT_SETTING_SOURCES", default="user,project,local")

    @staticmethod
    def cwd() -> str:
        """Working directory for engines. Empty means the server's cwd.

        Env: VIBEST_AGENT_CWD
        """
        return _get("VIBEST_AGENT_CWD")

    @staticmethod
    def cli_path() -> str:
        """Path to the Claude Code CLI. Empty lets the SDK locate it.

        Env: VIBEST_AGENT_CLI_PATH
        """
        return _get("VIBEST_AGENT_CLI_PATH")

    # -------------------------------------------------------------------------
    # Logging Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def log_level() -> str:
        """Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).

        Env: VIBEST_AGENT_LOG_LEVEL (default: INFO)
        """
        return _get("VIBEST_AGENT_LOG_LEVEL", default="INFO").upper()

    @staticmethod
    def log_format() -> str:
        """Log format: "console" for dev-friendly, "json" for structured.

        Env: VIBEST_AGENT_LOG_FORMAT (default: console)
        """
        return _get("VIBEST_AGENT_LOG_FORMAT", default="console").lower()


# Singleton instance for convenient imports
settings = Settings()
