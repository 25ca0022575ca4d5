"""
Workflow templates - Multi-step task graphs submitted as one batch.

A template is an ordered list of steps. Each step names its dependencies
by the index of an earlier step; those indices are resolved to real
process ids as the steps are submitted.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

from .monitor import OrchestratorMonitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowStep:
	"""One task in a workflow template."""
	task: str
	role: str
	priority: int
	dependencies: tuple[int, ...] = ()

	def to_dict(self) -> dict:
		return {
			"task": self.task,
			"role": self.role,
			"priority": self.priority,
			"dependencies": list(self.dependencies),
		}


@dataclass(frozen=True)
class WorkflowTemplate:
	"""A named, ordered list of workflow steps."""
	id: str
	name: str
	description: str
	steps: tuple[WorkflowStep, ...]

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"name": self.name,
			"description": self.description,
			"steps": [step.to_dict() for step in self.steps],
		}


CODE_REVIEW = WorkflowTemplate(
	id="code-review",
	name="Code Review",
	description="Comprehensive code review workflow",
	steps=(
		WorkflowStep("Analyze code structure and organization", "architect", 7),
		WorkflowStep("Find potential bugs and issues", "reviewer", 8),
		WorkflowStep("Check for security vulnerabilities", "reviewer", 9),
		WorkflowStep("Evaluate performance and optimization opportunities", "reviewer", 6),
		WorkflowStep("Review documentation and code comments", "documenter", 5),
		WorkflowStep("Generate a comprehensive code review report", "reviewer", 7, (0, 1, 2, 3, 4)),
	),
)

FEATURE_DEVELOPMENT = WorkflowTemplate(
	id="feature-development",
	name="Feature Development",
	description="End-to-end feature development workflow",
	steps=(
		WorkflowStep("Design feature architecture and interfaces", "architect", 9),
		WorkflowStep("Create implementation plan", "implementer", 8, (0,)),
		WorkflowStep("Implement core functionality", "implementer", 7, (1,)),
		WorkflowStep("Write unit tests", "tester", 6, (2,)),
		WorkflowStep("Write integration tests", "tester", 6, (2,)),
		WorkflowStep("Document the feature", "documenter", 5, (2,)),
		WorkflowStep("Review implementation", "reviewer", 7, (2, 3, 4, 5)),
		WorkflowStep("Create PR description", "documenter", 6, (6,)),
	),
)

BUG_FIX = WorkflowTemplate(
	id="bug-fix",
	name="Bug Fix",
	description="Workflow for fixing and verifying bugs",
	steps=(
		WorkflowStep("Analyze the bug and identify root cause", "reviewer", 9),
		WorkflowStep("Design fix approach", "architect", 8, (0,)),
		WorkflowStep("Implement the fix", "implementer", 7, (1,)),
		WorkflowStep("Write tests to verify fix", "tester", 8, (2,)),
		WorkflowStep("Update documentation if needed", "documenter", 5, (2,)),
		WorkflowStep("Create PR with bug fix description", "documenter", 6, (3, 4)),
	),
)

CODE_REFACTORING = WorkflowTemplate(
	id="code-refactoring",
	name="Code Refactoring",
	description="Workflow for code refactoring with safety checks",
	steps=(
		WorkflowStep("Analyze current code structure and issues", "reviewer", 8),
		WorkflowStep("Design refactoring approach", "architect", 9, (0,)),
		WorkflowStep("Create test suite to verify behavior", "tester", 8, (0,)),
		WorkflowStep("Implement refactoring", "implementer", 7, (1, 2)),
		WorkflowStep("Verify tests still pass", "tester", 8, (3,)),
		WorkflowStep("Update documentation", "documenter", 6, (3,)),
		WorkflowStep("Create PR with refactoring description", "documenter", 7, (4, 5)),
	),
)

WORKFLOW_TEMPLATES = MappingProxyType({
	"CODE_REVIEW": CODE_REVIEW,
	"FEATURE_DEVELOPMENT": FEATURE_DEVELOPMENT,
	"BUG_FIX": BUG_FIX,
	"CODE_REFACTORING": CODE_REFACTORING,
})


def get_template(template_id: str) -> Optional[WorkflowTemplate]:
	"""Find a template by id ("bug-fix") or constant name ("BUG_FIX"), any case."""
	key = template_id.strip().upper().replace("-", "_")
	return WORKFLOW_TEMPLATES.get(key)


def get_template_or_raise(template_id: str) -> WorkflowTemplate:
	template = get_template(template_id)
	if template is None:
		raise KeyError(f"Workflow template {template_id} not found")
	return template


def list_templates() -> list[WorkflowTemplate]:
	return list(WORKFLOW_TEMPLATES.values())


def resolve_dependencies(step_index: int, step: WorkflowStep, process_ids: list[str]) -> list[str]:
	"""
	Map a step's dependency indices to process ids of earlier steps.

	Indices that do not point at an already-submitted earlier step are
	dropped with a warning.
	"""
	resolved = []
	for dep_index in step.dependencies:
		if dep_index < 0 or dep_index >= step_index or dep_index >= len(process_ids):
			logger.warning(f"Invalid dependency index {dep_index} for step {step_index}")
			continue
		resolved.append(process_ids[dep_index])
	return resolved


class WorkflowExecution:
	"""Submits a template's steps to the monitor with dependencies wired up."""

	def __init__(
		self,
		monitor: OrchestratorMonitor,
		template: WorkflowTemplate | str,
		working_directory: Optional[str] = None,
	):
		"""
		Args:
			monitor: Monitor that receives the submissions
			template: Template or template id

		Raises:
			KeyError: If a template id does not match any template
		"""
		self.monitor = monitor
		self.template = get_template_or_raise(template) if isinstance(template, str) else template
		self.working_directory = working_directory
		self._custom_tasks: dict[int, str] = {}
		self._process_ids: list[str] = []

		logger.info(f"Created workflow execution for template {self.template.id}")

	def set_custom_task(self, step_index: int, task: str) -> None:
		"""
		Replace one step's task text; role, priority and wiring are unchanged.

		Raises:
			ValueError: If the replacement text is blank
		"""
		if not task.strip():
			raise ValueError(f"Custom task for step {step_index} is empty")
		self._custom_tasks[step_index] = task

	async def execute(self) -> list[str]:
		"""
		Submit every step in order.

		Returns:
			Process ids, one per step, in step order
		"""
		self._process_ids = []

		for i, step in enumerate(self.template.steps):
			task = self._custom_tasks.get(i, step.task)
			dependencies = resolve_dependencies(i, step, self._process_ids)

			process_id = await self.monitor.submit(
				task,
				step.priority,
				step.role,
				self.working_directory,
				dependencies,
			)
			self._process_ids.append(process_id)

		logger.info(f"Executed workflow {self.template.id} with {len(self._process_ids)} steps")
		return list(self._process_ids)

	@property
	def process_ids(self) -> list[str]:
		return list(self._process_ids)


async def execute_workflow(
	monitor: OrchestratorMonitor,
	template: WorkflowTemplate | str,
	working_directory: Optional[str] = None,
	overrides: Optional[dict[int, str]] = None,
) -> list[str]:
	"""Expand a template into submissions, applying per-step task overrides."""
	execution = WorkflowExecution(monitor, template, working_directory)
	for step_index, task in (overrides or {}).items():
		execution.set_custom_task(int(step_index), task)
	return await execution.execute()
