"""Workflow tools - expand a template into a dependency-wired batch of tasks."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..orchestrator.monitor import OrchestratorMonitor
from ..orchestrator.workflows import WorkflowExecution, get_template, list_templates

logger = logging.getLogger(__name__)


def register_workflow_tools(mcp: FastMCP, monitor: OrchestratorMonitor) -> None:
	"""Register workflow tools."""

	@mcp.tool()
	async def list_workflow_templates() -> str:
		"""List the available workflow templates and their steps."""
		return json.dumps({
			"templates": [template.to_dict() for template in list_templates()],
		}, indent=2)

	@mcp.tool()
	async def create_workflow(
		template_id: str,
		working_directory: Optional[str] = None,
		custom_tasks: Optional[dict[int, str]] = None,
	) -> str:
		"""
		Submit every step of a workflow template as a task.

		Step dependencies are wired to the ids of the earlier steps, so the
		steps run in dependency order as slots free up.

		Args:
			template_id: Template ID (code-review, feature-development, bug-fix, code-refactoring)
			working_directory: Directory all steps operate in
			custom_tasks: Replacement task text keyed by step index
		"""
		template = get_template(template_id)
		if template is None:
			available = ", ".join(t.id for t in list_templates())
			return json.dumps({
				"success": False,
				"error": f"Workflow template {template_id} not found. Available: {available}",
			})

		execution = WorkflowExecution(monitor, template, working_directory)
		for step_index, task in (custom_tasks or {}).items():
			if not 0 <= int(step_index) < len(template.steps):
				logger.warning(f"Ignoring custom task for unknown step {step_index} of {template.id}")
				continue
			try:
				execution.set_custom_task(int(step_index), task)
			except ValueError as e:
				return json.dumps({"success": False, "error": str(e)})

		process_ids = await execution.execute()

		steps = []
		for i, (step, process_id) in enumerate(zip(template.steps, process_ids)):
			record = monitor.get(process_id)
			steps.append({
				"step": i,
				"process_id": process_id,
				"task": record.task if record else step.task,
				"role": step.role,
				"priority": step.priority,
				"dependencies": record.dependencies if record else [],
				"status": record.status.value if record else None,
			})

		return json.dumps({
			"success": True,
			"workflow": template.id,
			"process_ids": process_ids,
			"steps": steps,
		}, indent=2)
