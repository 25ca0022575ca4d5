"""Configuration tools - read and tune the live orchestrator settings."""

import json
import logging
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from ..orchestrator.monitor import OrchestratorMonitor

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000


def _config_view(monitor: OrchestratorMonitor) -> dict:
	config = monitor.get_config()
	view = config.to_dict()
	view["worker_executable_path"] = config.worker_executable_path or None
	view["monitor_running"] = monitor.is_running
	return view


def register_settings_tools(mcp: FastMCP, monitor: OrchestratorMonitor) -> None:
	"""Register configuration tools."""

	@mcp.tool()
	async def get_orchestrator_config() -> str:
		"""Get the current orchestrator configuration. Durations are milliseconds."""
		return json.dumps(_config_view(monitor), indent=2)

	@mcp.tool()
	async def configure_orchestrator(
		max_concurrent_processes: Annotated[Optional[int], Field(ge=1, le=16)] = None,
		process_timeout_minutes: Annotated[Optional[float], Field(gt=0, le=120)] = None,
		interaction_timeout_minutes: Annotated[Optional[float], Field(gt=0, le=60)] = None,
		cleanup_interval_minutes: Annotated[Optional[float], Field(gt=0, le=240)] = None,
		old_process_max_age_minutes: Annotated[Optional[float], Field(gt=0)] = None,
		worker_executable_path: Optional[str] = None,
		worker_args: Optional[list[str]] = None,
	) -> str:
		"""
		Update orchestrator settings. Omitted options keep their value.

		Raising max_concurrent_processes starts queued tasks right away.

		Args:
			max_concurrent_processes: Maximum number of live workers (1-16)
			process_timeout_minutes: Ceiling on a worker's total running time
			interaction_timeout_minutes: Ceiling on time spent waiting for input
			cleanup_interval_minutes: How often finished records are swept
			old_process_max_age_minutes: How long finished records are kept
			worker_executable_path: Executable launched for every task
			worker_args: Extra arguments passed to the worker executable
		"""
		changes = {}
		if max_concurrent_processes is not None:
			changes["max_concurrent_processes"] = max_concurrent_processes
		if process_timeout_minutes is not None:
			changes["process_timeout_ms"] = int(process_timeout_minutes * MINUTE_MS)
		if interaction_timeout_minutes is not None:
			changes["interaction_timeout_ms"] = int(interaction_timeout_minutes * MINUTE_MS)
		if cleanup_interval_minutes is not None:
			changes["cleanup_interval_ms"] = int(cleanup_interval_minutes * MINUTE_MS)
		if old_process_max_age_minutes is not None:
			changes["old_process_max_age_ms"] = int(old_process_max_age_minutes * MINUTE_MS)
		if worker_executable_path is not None:
			changes["worker_executable_path"] = worker_executable_path
		if worker_args is not None:
			changes["worker_args"] = list(worker_args)

		if not changes:
			return json.dumps({"success": True, "message": "No configuration changes made."})

		old = monitor.get_config().to_dict()
		await monitor.update_config(**changes)
		new = monitor.get_config().to_dict()

		return json.dumps({
			"success": True,
			"changes": {key: {"old": old[key], "new": new[key]} for key in changes},
			"config": _config_view(monitor),
		}, indent=2)
