"""MCP resources - read-only views of orchestrator state."""

import json

from mcp.server.fastmcp import FastMCP

from .orchestrator.monitor import OrchestratorMonitor
from .orchestrator.roles import list_roles
from .orchestrator.workflows import list_templates


def register_resources(mcp: FastMCP, monitor: OrchestratorMonitor) -> None:
	"""Register orchestrator resources."""

	@mcp.resource("orchestrator://status")
	def orchestration_status() -> str:
		"""Counts by status, queue depth, and slot usage."""
		return json.dumps(monitor.status_summary(), indent=2)

	@mcp.resource("orchestrator://roles")
	def role_definitions() -> str:
		"""The agent role catalog."""
		return json.dumps([role.to_dict() for role in list_roles()], indent=2)

	@mcp.resource("orchestrator://workflows")
	def workflow_templates() -> str:
		"""Available workflow templates."""
		return json.dumps([template.to_dict() for template in list_templates()], indent=2)

	@mcp.resource("process-logs://{process_id}")
	def process_logs(process_id: str) -> str:
		"""Full captured output of one process."""
		record = monitor.get(process_id)
		if record is None:
			return f"Process {process_id} not found."
		return record.output
