"""MCP tool registration - modular tool definitions."""

from mcp.server.fastmcp import FastMCP

from ..orchestrator.monitor import OrchestratorMonitor
from .queue import register_queue_tools
from .roles import register_role_tools
from .settings import register_settings_tools
from .status import register_status_tools
from .tasks import register_task_tools
from .workflows import register_workflow_tools


def register_all_tools(mcp: FastMCP, monitor: OrchestratorMonitor) -> None:
	"""Register all MCP tools against one monitor."""
	register_task_tools(mcp, monitor)
	register_queue_tools(mcp, monitor)
	register_settings_tools(mcp, monitor)
	register_role_tools(mcp)
	register_workflow_tools(mcp, monitor)
	register_status_tools(mcp, monitor)
