"""Agent execution session core: Claude Code sessions as async streams."""

__version__ = "0.1.0"
