"""CLI for claude-code-orchestrator: serve, roles, workflows, and run commands."""

import argparse
import asyncio
import sys
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console

from .config import load_config
from .logging_config import setup_logging
from .orchestrator.monitor import OrchestratorMonitor
from .orchestrator.process import ProcessStatus
from .orchestrator.roles import list_roles
from .orchestrator.workflows import WorkflowExecution, get_template, list_templates
from .views import render_processes, render_roles, render_workflows


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	from .server import create_server

	config = load_config()
	setup_logging(level=args.log_level, log_dir=config.log_dir)
	mcp = create_server(config)
	mcp.run()


def cmd_roles(args: argparse.Namespace) -> None:
	"""Print the role catalog."""
	render_roles(list_roles())


def cmd_workflows(args: argparse.Namespace) -> None:
	"""Print the workflow templates."""
	render_workflows(list_templates())


def _parse_custom_tasks(values: Optional[list[str]]) -> dict[int, str]:
	"""Parse repeated INDEX=TASK arguments."""
	custom = {}
	for value in values or []:
		index, sep, task = value.partition("=")
		if not sep or not index.strip().isdigit():
			raise ValueError(f"Expected INDEX=TASK, got: {value}")
		custom[int(index)] = task
	return custom


async def _run(args: argparse.Namespace) -> int:
	config = load_config()
	setup_logging(level=args.log_level, log_dir=config.log_dir)

	overrides = {}
	if args.worker:
		overrides["worker_executable_path"] = args.worker
	if args.worker_arg:
		overrides["worker_args"] = list(args.worker_arg)
	if args.max_concurrent:
		overrides["max_concurrent_processes"] = args.max_concurrent
	if args.timeout_minutes:
		overrides["process_timeout_ms"] = int(args.timeout_minutes * 60 * 1000)

	monitor = OrchestratorMonitor(config.orchestrator_config().merged(overrides))
	if not monitor.config.worker_executable_path:
		print("No worker executable configured. Pass --worker or set CLAUDE_ORCHESTRATOR_WORKER_PATH.")
		return 1

	monitor.start()
	try:
		if args.workflow:
			template = get_template(args.workflow)
			if template is None:
				print(f"Unknown workflow: {args.workflow}")
				return 1
			execution = WorkflowExecution(monitor, template, args.working_directory)
			for step_index, task in _parse_custom_tasks(args.custom_task).items():
				execution.set_custom_task(step_index, task)
			await execution.execute()
		else:
			for task in args.tasks:
				await monitor.submit(task, args.priority, args.role, args.working_directory)

		await monitor.wait_until_idle(auto_answer=args.answer)
	finally:
		monitor.stop()

	records = sorted(monitor.list_all(), key=lambda r: r.start_time)
	render_processes(records, monitor.list_pending(), console=Console())

	if args.show_output:
		for record in records:
			print(f"\n===== {record.id} ({record.role.id}) =====")
			print(record.output)

	failed = [r for r in records if r.status != ProcessStatus.COMPLETED]
	return 1 if failed or monitor.list_pending() else 0


def cmd_run(args: argparse.Namespace) -> None:
	"""Submit tasks (or a workflow) and supervise them until everything finishes."""
	if not args.tasks and not args.workflow:
		print("Nothing to run: give one or more tasks or --workflow.")
		sys.exit(1)
	try:
		exit_code = asyncio.run(_run(args))
	except ValueError as e:
		print(f"Error: {e}")
		exit_code = 1
	sys.exit(exit_code)


def main() -> None:
	load_dotenv()

	parser = argparse.ArgumentParser(
		prog="claude-code-orchestrator",
		description="Schedule and supervise Claude Code worker processes",
	)
	parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING, ERROR")
	subparsers = parser.add_subparsers(dest="command")

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	# roles
	roles_parser = subparsers.add_parser("roles", help="List agent roles")
	roles_parser.set_defaults(func=cmd_roles)

	# workflows
	workflows_parser = subparsers.add_parser("workflows", help="List workflow templates")
	workflows_parser.set_defaults(func=cmd_workflows)

	# run
	run_parser = subparsers.add_parser("run", help="Run tasks locally and wait for them to finish")
	run_parser.add_argument("tasks", nargs="*", help="Task descriptions")
	run_parser.add_argument("--workflow", type=str, default=None, help="Workflow template ID instead of tasks")
	run_parser.add_argument(
		"--custom-task",
		action="append",
		default=None,
		metavar="INDEX=TASK",
		help="Override a workflow step's task text (repeatable)",
	)
	run_parser.add_argument("--role", type=str, default="generalist", help="Role for plain tasks")
	run_parser.add_argument("--priority", type=int, default=5, choices=range(1, 11), metavar="1-10")
	run_parser.add_argument("--working-directory", type=str, default=None)
	run_parser.add_argument("--worker", type=str, default=None, help="Worker executable path")
	run_parser.add_argument("--worker-arg", action="append", default=None, help="Extra worker argument (repeatable)")
	run_parser.add_argument("--max-concurrent", type=int, default=None)
	run_parser.add_argument("--timeout-minutes", type=float, default=None)
	run_parser.add_argument("--answer", type=str, default=None, help="Reply sent to workers waiting for input")
	run_parser.add_argument("--show-output", action="store_true", help="Print each process's captured output")
	run_parser.set_defaults(func=cmd_run)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.func(args)


if __name__ == "__main__":
	main()
