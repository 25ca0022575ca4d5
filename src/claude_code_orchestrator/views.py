"""Rich views for the command line."""

from typing import Optional

from rich.console import Console
from rich.table import Table

from .orchestrator.process import ProcessRecord, ProcessStatus, runtime_seconds
from .orchestrator.queue import QueueEntry
from .orchestrator.roles import Role
from .orchestrator.workflows import WorkflowTemplate

STATUS_STYLES = {
	ProcessStatus.PENDING: "dim",
	ProcessStatus.RUNNING: "cyan",
	ProcessStatus.WAITING: "yellow",
	ProcessStatus.COMPLETED: "green",
	ProcessStatus.FAILED: "red",
	ProcessStatus.CANCELED: "magenta",
}


def render_roles(roles: list[Role], console: Optional[Console] = None) -> None:
	"""Render the role catalog."""
	console = console or Console()

	table = Table(title="Agent Roles")
	table.add_column("ID", style="cyan")
	table.add_column("Name")
	table.add_column("Description")
	table.add_column("Typical Tasks", style="dim")

	for role in roles:
		table.add_row(role.id, role.name, role.description, ", ".join(role.tasks))

	console.print(table)


def render_workflows(templates: list[WorkflowTemplate], console: Optional[Console] = None) -> None:
	"""Render each workflow template as a table of steps."""
	console = console or Console()

	for template in templates:
		table = Table(title=f"{template.name} ({template.id})", caption=template.description)
		table.add_column("#", justify="right")
		table.add_column("Task")
		table.add_column("Role", style="cyan")
		table.add_column("Priority", justify="right")
		table.add_column("Depends On", style="dim")

		for i, step in enumerate(template.steps):
			table.add_row(
				str(i),
				step.task,
				step.role,
				str(step.priority),
				", ".join(str(d) for d in step.dependencies) or "-",
			)
		console.print(table)


def render_processes(
	records: list[ProcessRecord],
	pending: Optional[list[QueueEntry]] = None,
	console: Optional[Console] = None,
) -> None:
	"""Render process records, plus any tasks still stuck in the queue."""
	console = console or Console()

	if not records:
		console.print("[dim]No processes.[/dim]")
		return

	table = Table(title="Processes")
	table.add_column("ID", style="cyan", no_wrap=True)
	table.add_column("Task")
	table.add_column("Role")
	table.add_column("Priority", justify="right")
	table.add_column("Status")
	table.add_column("Exit", justify="right")
	table.add_column("Runtime", justify="right")

	for record in records:
		style = STATUS_STYLES[record.status]
		table.add_row(
			record.id[:8],
			record.task,
			record.role.id,
			str(record.priority),
			f"[{style}]{record.status.value}[/{style}]",
			"-" if record.exit_code is None else str(record.exit_code),
			f"{runtime_seconds(record)}s",
		)
	console.print(table)

	if pending:
		console.print(f"[yellow]{len(pending)} task(s) never became eligible (unmet dependencies).[/yellow]")
