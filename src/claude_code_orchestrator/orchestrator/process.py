"""
Process Supervisor - Lifecycle of one worker process bound to one task.

Responsibilities:
- Spawn the worker with role-derived environment
- Capture stdout/stderr into the task's output buffer
- Detect interactive prompts and park the task in WAITING
- Deliver input to waiting workers
- Terminate workers on request or timeout
"""

import asyncio
import codecs
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

from .roles import DEFAULT_ROLE_ID, Role, get_role

logger = logging.getLogger(__name__)

# Substrings in worker stdout that mean the worker is blocked on a question
PROMPT_MARKERS = (
	"(Y/n)",
	"Do you want to proceed?",
	"Enter your choice:",
	"[y/N]",
)

READ_CHUNK_SIZE = 4096
EXIT_POLL_INTERVAL = 0.1  # seconds
OUTPUT_DRAIN_TIMEOUT = 0.5  # seconds to keep reading output after the worker exits


class ProcessStatus(str, Enum):
	"""Status of a worker process record."""
	PENDING = "pending"
	RUNNING = "running"
	WAITING = "waiting"
	COMPLETED = "completed"
	FAILED = "failed"
	CANCELED = "canceled"


ACTIVE_STATUSES = frozenset({ProcessStatus.RUNNING, ProcessStatus.WAITING})
TERMINAL_STATUSES = frozenset({
	ProcessStatus.COMPLETED,
	ProcessStatus.FAILED,
	ProcessStatus.CANCELED,
})


@dataclass
class ProcessRecord:
	"""A unit of work and the worker process executing it."""
	id: str
	task: str
	role: Role
	priority: int
	status: ProcessStatus
	start_time: float
	last_activity: float
	output: str = ""
	waiting_since: Optional[float] = None
	exit_code: Optional[int] = None
	working_directory: Optional[str] = None
	dependencies: list[str] = field(default_factory=list)
	process: Optional[asyncio.subprocess.Process] = field(default=None, repr=False)

	def touch(self) -> None:
		self.last_activity = time.time()

	def annotate(self, message: str) -> None:
		"""Append an orchestrator annotation to the output buffer."""
		self.output += message

	def to_dict(self, include_output: bool = False) -> dict:
		"""Convert to dictionary for JSON serialization."""
		data = {
			"id": self.id,
			"task": self.task,
			"role": self.role.id,
			"role_name": self.role.name,
			"priority": self.priority,
			"status": self.status.value,
			"start_time": self.start_time,
			"last_activity": self.last_activity,
			"waiting_since": self.waiting_since,
			"runtime_seconds": runtime_seconds(self),
			"exit_code": self.exit_code,
			"working_directory": self.working_directory,
			"dependencies": list(self.dependencies),
		}
		if include_output:
			data["output"] = self.output
		return data


def create_process_record(
	task: str,
	priority: int = 5,
	role_id: str = DEFAULT_ROLE_ID,
	working_directory: Optional[str] = None,
	dependencies: Optional[list[str]] = None,
) -> ProcessRecord:
	"""Create a PENDING record with a fresh id."""
	role = get_role(role_id)
	now = time.time()
	return ProcessRecord(
		id=str(uuid.uuid4()),
		task=task,
		role=role,
		priority=priority,
		status=ProcessStatus.PENDING,
		start_time=now,
		last_activity=now,
		output=f"[ORCHESTRATOR] Created task: {task}\nRole: {role.name}\n",
		working_directory=working_directory,
		dependencies=list(dependencies or []),
	)


def role_environment(record: ProcessRecord) -> dict[str, str]:
	"""Environment variables that tell the worker who it is and what to do."""
	env = {
		"CLAUDE_ORCHESTRATOR_PROCESS_ID": record.id,
		"CLAUDE_ORCHESTRATOR_ROLE": record.role.id,
		"CLAUDE_ORCHESTRATOR_TASK": record.task,
		"CLAUDE_ORCHESTRATOR_PROMPT_PREFIX": record.role.prompt_prefix,
	}
	if record.working_directory:
		env["CLAUDE_ORCHESTRATOR_WORKING_DIR"] = record.working_directory
	return env


async def spawn_worker(
	command: str,
	args: list[str],
	env: dict[str, str],
) -> asyncio.subprocess.Process:
	"""Start a worker with piped stdio and the caller's environment merged over ours."""
	logger.debug(f"Starting process: {command} {' '.join(args)}")
	return await asyncio.create_subprocess_exec(
		command,
		*args,
		stdin=asyncio.subprocess.PIPE,
		stdout=asyncio.subprocess.PIPE,
		stderr=asyncio.subprocess.PIPE,
		env={**os.environ, **env},
	)


SpawnFn = Callable[[str, list[str], dict[str, str]], Awaitable[asyncio.subprocess.Process]]


def runtime_seconds(record: ProcessRecord, now: Optional[float] = None) -> int:
	"""Whole seconds since launch; frozen at last activity once the worker is done."""
	if record.status in ACTIVE_STATUSES:
		end = time.time() if now is None else now
	else:
		end = record.last_activity
	return max(0, int(end - record.start_time))


def has_timed_out(
	record: ProcessRecord,
	running_timeout_ms: int,
	waiting_timeout_ms: int,
	now: Optional[float] = None,
) -> bool:
	"""
	Check a record against the two timeout ceilings.

	The running ceiling counts from launch, not from last activity, so a
	busy worker is still stopped once it exceeds it.
	"""
	now = time.time() if now is None else now

	if record.status == ProcessStatus.WAITING and record.waiting_since is not None:
		return (now - record.waiting_since) * 1000 > waiting_timeout_ms

	if record.status == ProcessStatus.RUNNING:
		return (now - record.start_time) * 1000 > running_timeout_ms

	return False


class Supervisor:
	"""
	Launches and supervises worker processes.

	Every failure is absorbed into the record (status, output annotation)
	and logged; nothing is raised to the caller.
	"""

	def __init__(
		self,
		spawn: SpawnFn = spawn_worker,
		on_exit: Optional[Callable[[ProcessRecord], Awaitable[None]]] = None,
	):
		"""
		Initialize the supervisor.

		Args:
			spawn: Coroutine that starts a worker and returns its handle
			on_exit: Callback(record) after a worker exits and is reaped
		"""
		self._spawn = spawn
		self.on_exit = on_exit
		self._watchers: dict[str, asyncio.Task] = {}

	async def launch(
		self,
		record: ProcessRecord,
		command: str,
		args: Optional[list[str]] = None,
		env: Optional[dict[str, str]] = None,
	) -> bool:
		"""
		Spawn the worker for a record.

		Args:
			record: PENDING record to launch
			command: Executable to run
			args: Command line arguments
			env: Extra environment; role variables are layered on top

		Returns:
			True if the worker started, False if the record is now FAILED
		"""
		args = list(args or [])
		process_env = dict(env or {})
		process_env.update(role_environment(record))

		logger.info(f"Launching process {record.id} for task: {record.task}")

		try:
			handle = await self._spawn(command, args, process_env)
		except Exception as e:
			record.status = ProcessStatus.FAILED
			record.annotate(f"\n[ORCHESTRATOR] Failed to launch process: {e}")
			record.touch()
			logger.error(f"Failed to launch process {record.id}: {e}")
			return False

		record.process = handle
		record.status = ProcessStatus.RUNNING
		record.start_time = time.time()
		record.last_activity = record.start_time
		record.annotate(f"\n[ORCHESTRATOR] Process started with command: {command} {' '.join(args)}\n")

		self._watchers[record.id] = asyncio.create_task(self._supervise(record, handle))
		logger.debug(f"Process {record.id} launched successfully")
		return True

	async def _supervise(self, record: ProcessRecord, handle) -> None:
		"""
		Pump both streams while waiting for the worker to exit, then reap it.

		A grandchild can keep the pipes open after the worker itself exits,
		so output is drained for at most OUTPUT_DRAIN_TIMEOUT after exit.
		"""
		readers = asyncio.gather(
			self._pump(handle.stdout, lambda text: self._on_stdout(record, text)),
			self._pump(handle.stderr, lambda text: self._on_stderr(record, text)),
		)

		exit_code = await self._wait_for_exit(handle)

		try:
			await asyncio.wait_for(readers, timeout=OUTPUT_DRAIN_TIMEOUT)
		except asyncio.TimeoutError:
			logger.warning(f"Output of process {record.id} still open after exit, detaching")
		except (OSError, ValueError) as e:
			logger.error(f"Error reading output of process {record.id}: {e}")

		await self._on_exit(record, exit_code)

	async def _wait_for_exit(self, handle) -> Optional[int]:
		# Process.wait() can hold out until the pipes close; returncode is set on exit itself
		waiter = asyncio.ensure_future(handle.wait())
		while handle.returncode is None and not waiter.done():
			await asyncio.wait({waiter}, timeout=EXIT_POLL_INTERVAL)

		if waiter.done():
			return waiter.result()
		waiter.cancel()
		return handle.returncode

	async def _pump(self, stream, on_text: Callable[[str], None]) -> None:
		if stream is None:
			return
		decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
		while True:
			chunk = await stream.read(READ_CHUNK_SIZE)
			if not chunk:
				tail = decoder.decode(b"", final=True)
				if tail:
					on_text(tail)
				return
			text = decoder.decode(chunk)
			if text:
				on_text(text)

	def _on_stdout(self, record: ProcessRecord, text: str) -> None:
		record.output += text
		record.touch()

		if record.status == ProcessStatus.RUNNING and any(marker in text for marker in PROMPT_MARKERS):
			record.status = ProcessStatus.WAITING
			record.waiting_since = time.time()
			logger.info(f"Process {record.id} is waiting for input")

	def _on_stderr(self, record: ProcessRecord, text: str) -> None:
		record.output += f"[ERROR] {text}"
		record.touch()

	async def _on_exit(self, record: ProcessRecord, exit_code: Optional[int]) -> None:
		record.exit_code = exit_code
		record.process = None
		record.waiting_since = None
		# A stopped worker stays CANCELED; only the exit code is recorded
		if record.status != ProcessStatus.CANCELED:
			record.status = ProcessStatus.COMPLETED if exit_code == 0 else ProcessStatus.FAILED
		record.annotate(f"\n[ORCHESTRATOR] Process exited with code {exit_code}")
		record.touch()
		self._watchers.pop(record.id, None)
		logger.info(f"Process {record.id} exited with code {exit_code}")

		if self.on_exit:
			try:
				await self.on_exit(record)
			except Exception as e:
				logger.error(f"on_exit callback failed for {record.id}: {e}")

	def send_input(self, record: ProcessRecord, text: str) -> bool:
		"""
		Write a line to a waiting worker's stdin.

		Returns:
			False (and no state change) unless the record is WAITING with a live worker
		"""
		if record.status != ProcessStatus.WAITING:
			logger.warning(f"Process {record.id} is not waiting for input (current status: {record.status.value})")
			return False

		if record.process is None or record.process.stdin is None:
			logger.error(f"Process {record.id} has no associated child process")
			return False

		try:
			record.process.stdin.write(f"{text}\n".encode())
		except (OSError, RuntimeError) as e:
			logger.error(f"Error sending input to process {record.id}: {e}")
			return False

		record.status = ProcessStatus.RUNNING
		record.waiting_since = None
		record.touch()
		record.annotate(f"\n[USER INPUT] {text}\n")
		logger.info(f"Sent input to process {record.id}: {text}")
		return True

	def stop(self, record: ProcessRecord) -> bool:
		"""
		Forcibly terminate a RUNNING or WAITING worker.

		Returns:
			True if the record is now CANCELED
		"""
		if record.status not in ACTIVE_STATUSES:
			logger.warning(f"Process {record.id} is not running or waiting (current status: {record.status.value})")
			return False

		if record.process is None:
			logger.error(f"Process {record.id} has no associated child process")
			return False

		try:
			record.process.kill()
		except ProcessLookupError:
			logger.debug(f"Process {record.id} already exited before kill")

		record.status = ProcessStatus.CANCELED
		record.waiting_since = None
		record.annotate("\n[ORCHESTRATOR] Process stopped by user.")
		record.touch()
		logger.info(f"Process {record.id} stopped by user")
		return True

	def watcher(self, process_id: str) -> Optional[asyncio.Task]:
		"""The background task supervising a live worker, if any."""
		return self._watchers.get(process_id)
