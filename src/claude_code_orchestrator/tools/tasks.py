"""Task tools - submit work, inspect processes, answer prompts, stop workers."""

import json
import logging
from typing import Annotated, Literal, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from ..orchestrator.monitor import OrchestratorMonitor
from ..orchestrator.process import ACTIVE_STATUSES, ProcessStatus

logger = logging.getLogger(__name__)

# Live workers first, then queued, then finished
STATUS_ORDER = {
	ProcessStatus.RUNNING: 0,
	ProcessStatus.WAITING: 1,
	ProcessStatus.PENDING: 2,
	ProcessStatus.COMPLETED: 3,
	ProcessStatus.FAILED: 4,
	ProcessStatus.CANCELED: 5,
}

Priority = Annotated[int, Field(ge=1, le=10, description="Priority level (1-10, with 10 being highest)")]


def register_task_tools(mcp: FastMCP, monitor: OrchestratorMonitor) -> None:
	"""Register task submission and process control tools."""

	@mcp.tool()
	async def submit_task(
		task: str,
		priority: Priority = 5,
		role: str = "generalist",
		working_directory: Optional[str] = None,
		dependencies: Optional[list[str]] = None,
	) -> str:
		"""
		Submit a development task to the orchestrator.

		The task is queued and launched as soon as a slot is free and all
		of its dependencies have completed.

		Args:
			task: The development task to be performed
			priority: Priority level (1-10, with 10 being highest)
			role: Agent role (architect, implementer, tester, reviewer, devops, documenter, generalist)
			working_directory: Directory the worker should operate in
			dependencies: IDs of processes that must complete first
		"""
		task_id = await monitor.submit(task, priority, role, working_directory, dependencies)
		record = monitor.get(task_id)
		return json.dumps({
			"success": True,
			"task_id": task_id,
			"priority": priority,
			"role": record.role.id if record else role,
			"status": record.status.value if record else None,
		}, indent=2)

	@mcp.tool()
	async def list_processes(
		status: Literal["all", "running", "waiting", "pending", "completed", "failed", "canceled"] = "all",
	) -> str:
		"""
		List orchestrated processes, optionally filtered by status.

		Args:
			status: Filter processes by status
		"""
		if status == "all":
			records = monitor.list_all()
		else:
			records = monitor.list_by_status(ProcessStatus(status))

		records.sort(key=lambda r: (STATUS_ORDER[r.status], -r.priority))
		return json.dumps({
			"filter": status,
			"count": len(records),
			"processes": [r.to_dict() for r in records],
		}, indent=2)

	@mcp.tool()
	async def process_details(process_id: str, include_output: bool = False) -> str:
		"""
		Get detailed information about one process.

		Args:
			process_id: Process ID to get details for
			include_output: Whether to include the captured output
		"""
		record = monitor.get(process_id)
		if not record:
			return json.dumps({"success": False, "error": f"Process not found: {process_id}"})

		return json.dumps({
			"success": True,
			"process": record.to_dict(include_output=include_output),
		}, indent=2)

	@mcp.tool()
	async def respond_to_process(process_id: str, input: str) -> str:
		"""
		Send input to a process that is waiting at an interactive prompt.

		Args:
			process_id: Process ID to respond to
			input: Text to send (a newline is appended)
		"""
		record = monitor.get(process_id)
		if not record:
			return json.dumps({"success": False, "error": f"Process not found: {process_id}"})

		if record.status != ProcessStatus.WAITING:
			return json.dumps({
				"success": False,
				"error": f"Process {process_id} is not waiting for input (current status: {record.status.value})",
			})

		if not monitor.send_input(process_id, input):
			return json.dumps({"success": False, "error": f"Failed to send input to process {process_id}"})

		return json.dumps({
			"success": True,
			"message": f"Input sent to process {process_id}. Process has resumed execution.",
		})

	@mcp.tool()
	async def stop_process(process_id: str) -> str:
		"""
		Stop a running or waiting process.

		Args:
			process_id: Process ID to stop
		"""
		record = monitor.get(process_id)
		if not record:
			return json.dumps({"success": False, "error": f"Process not found: {process_id}"})

		if record.status not in ACTIVE_STATUSES:
			return json.dumps({
				"success": False,
				"error": f"Process {process_id} is not running or waiting (current status: {record.status.value})",
			})

		previous = record.status
		await monitor.stop_process(process_id)
		logger.info(f"Stopped process {process_id} via tool (was {previous.value})")
		return json.dumps({
			"success": True,
			"message": f"Process {process_id} stopped",
			"task": record.task,
			"role": record.role.id,
		})
