"""Queue tools - inspect and reorder tasks that have not been dispatched yet."""

import json

from mcp.server.fastmcp import FastMCP

from ..orchestrator.monitor import OrchestratorMonitor
from .tasks import Priority


def register_queue_tools(mcp: FastMCP, monitor: OrchestratorMonitor) -> None:
	"""Register queue management tools."""

	@mcp.tool()
	async def list_queue() -> str:
		"""
		List tasks waiting to be dispatched, highest priority first.

		Tasks stay here until a slot is free and their dependencies complete.
		"""
		entries = sorted(monitor.list_pending(), key=lambda e: e.priority, reverse=True)
		return json.dumps({
			"count": len(entries),
			"active": monitor.queue.active_count(),
			"max_concurrent": monitor.get_config().max_concurrent_processes,
			"queue": [e.to_dict() for e in entries],
		}, indent=2)

	@mcp.tool()
	async def update_task_priority(task_id: str, priority: Priority) -> str:
		"""
		Change the priority of a queued task.

		Args:
			task_id: ID of a task that has not started yet
			priority: New priority (1-10)
		"""
		if not monitor.update_priority(task_id, priority):
			return json.dumps({"success": False, "error": f"Task {task_id} is not in the queue"})

		await monitor.schedule_next()
		return json.dumps({"success": True, "task_id": task_id, "priority": priority})

	@mcp.tool()
	async def remove_queued_task(task_id: str) -> str:
		"""
		Remove a task from the queue before it starts.

		Args:
			task_id: ID of a task that has not started yet
		"""
		if not monitor.remove_task(task_id):
			return json.dumps({"success": False, "error": f"Task {task_id} is not in the queue"})
		return json.dumps({"success": True, "message": f"Removed task {task_id} from queue"})
