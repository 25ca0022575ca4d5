"""claude-code-orchestrator MCP server."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP

from .config import Config, load_config
from .orchestrator.monitor import OrchestratorMonitor
from .resources import register_resources
from .tools import register_all_tools

logger = logging.getLogger(__name__)


def create_server(
	config: Optional[Config] = None,
	monitor: Optional[OrchestratorMonitor] = None,
) -> FastMCP:
	"""
	Build the MCP server around one orchestrator monitor.

	The monitor's periodic sweep runs for the lifetime of the server
	session; workers still running at shutdown are left alone.
	"""
	if monitor is None:
		config = config or load_config()
		monitor = OrchestratorMonitor(config.orchestrator_config())

	@asynccontextmanager
	async def lifespan(server: FastMCP) -> AsyncIterator[dict]:
		monitor.start()
		logger.info("Claude Code Orchestrator MCP server initialized")
		try:
			yield {"monitor": monitor}
		finally:
			monitor.stop()
			logger.info("Claude Code Orchestrator MCP server shutting down")

	mcp = FastMCP("claude-code-orchestrator", lifespan=lifespan)
	register_all_tools(mcp, monitor)
	register_resources(mcp, monitor)
	return mcp
