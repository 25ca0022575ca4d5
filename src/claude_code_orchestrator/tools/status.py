"""Status dashboard tool."""

import json

from mcp.server.fastmcp import FastMCP

from ..orchestrator.monitor import OrchestratorMonitor
from ..orchestrator.process import ProcessStatus


def register_status_tools(mcp: FastMCP, monitor: OrchestratorMonitor) -> None:
	"""Register the status dashboard tool."""

	@mcp.tool()
	async def orchestration_status() -> str:
		"""
		Summarize the orchestrator: counts by status, queue depth, slot usage,
		and which processes are waiting for input.
		"""
		summary = monitor.status_summary()
		summary["waiting_for_input"] = [
			{"id": r.id, "task": r.task, "waiting_since": r.waiting_since}
			for r in monitor.list_by_status(ProcessStatus.WAITING)
		]
		return json.dumps(summary, indent=2)
