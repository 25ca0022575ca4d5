"""Claude Code Orchestrator - schedule and supervise Claude Code worker processes over MCP."""

__version__ = "0.1.0"
