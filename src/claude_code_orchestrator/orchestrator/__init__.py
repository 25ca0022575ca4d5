"""Orchestrator module - Roles, supervision, queueing, scheduling, and workflows."""

from .monitor import OrchestratorConfig, OrchestratorMonitor
from .process import ProcessRecord, ProcessStatus, Supervisor
from .queue import QueueEntry, TaskQueue
from .roles import Role, get_role, list_roles, prompt_prefix_for
from .workflows import WorkflowExecution, WorkflowStep, WorkflowTemplate, execute_workflow

__all__ = [
	"OrchestratorConfig",
	"OrchestratorMonitor",
	"ProcessRecord",
	"ProcessStatus",
	"Supervisor",
	"QueueEntry",
	"TaskQueue",
	"Role",
	"get_role",
	"list_roles",
	"prompt_prefix_for",
	"WorkflowExecution",
	"WorkflowStep",
	"WorkflowTemplate",
	"execute_workflow",
]
