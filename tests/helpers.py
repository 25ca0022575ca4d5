"""Shared test fixtures and helpers for claude-code-orchestrator tests."""

import asyncio
from typing import Callable, Optional

from claude_code_orchestrator.orchestrator.monitor import OrchestratorConfig, OrchestratorMonitor
from claude_code_orchestrator.orchestrator.process import Supervisor


class FakeStdin:
	"""Records everything written to a worker's stdin."""

	def __init__(self):
		self.written: list[bytes] = []

	def write(self, data: bytes) -> None:
		self.written.append(data)

	@property
	def text(self) -> str:
		return b"".join(self.written).decode()


class FakeWorker:
	"""Stands in for asyncio.subprocess.Process; output and exit are driven by the test."""

	def __init__(self):
		self.stdin = FakeStdin()
		self.stdout = asyncio.StreamReader()
		self.stderr = asyncio.StreamReader()
		self.returncode: Optional[int] = None
		self.killed = False
		self._exited = asyncio.Event()

	def emit(self, text: str) -> None:
		self.stdout.feed_data(text.encode())

	def emit_error(self, text: str) -> None:
		self.stderr.feed_data(text.encode())

	def exit(self, code: Optional[int] = 0, close_streams: bool = True) -> None:
		"""Exit the worker. With close_streams=False the pipes stay open, as when a grandchild inherits them."""
		if self._exited.is_set():
			return
		self.returncode = code
		if close_streams:
			self.stdout.feed_eof()
			self.stderr.feed_eof()
		self._exited.set()

	def kill(self) -> None:
		self.killed = True
		self.exit(-9)

	async def wait(self) -> Optional[int]:
		await self._exited.wait()
		return self.returncode


class FakeSpawner:
	"""Spawn function that hands out FakeWorkers and remembers every call."""

	def __init__(self, fail_with: Optional[Exception] = None):
		self.fail_with = fail_with
		self.calls: list[tuple[str, list[str], dict[str, str]]] = []
		self.workers: list[FakeWorker] = []

	async def __call__(self, command: str, args: list[str], env: dict[str, str]) -> FakeWorker:
		self.calls.append((command, args, env))
		if self.fail_with is not None:
			raise self.fail_with
		worker = FakeWorker()
		self.workers.append(worker)
		return worker

	def worker_for(self, process_id: str) -> FakeWorker:
		"""Find the worker launched for a process id."""
		for (_, _, env), worker in zip(self.calls, self.workers):
			if env.get("CLAUDE_ORCHESTRATOR_PROCESS_ID") == process_id:
				return worker
		raise KeyError(process_id)


async def settle(rounds: int = 20) -> None:
	"""Let background reader tasks run."""
	for _ in range(rounds):
		await asyncio.sleep(0)


def make_monitor(
	spawner: Optional[FakeSpawner] = None,
	watchdog_interval: float = 3600.0,
	**config_overrides,
) -> tuple[OrchestratorMonitor, FakeSpawner]:
	"""Monitor wired to a FakeSpawner, with a worker path already configured."""
	spawner = spawner or FakeSpawner()
	options = {"max_concurrent_processes": 2, "worker_executable_path": "/usr/bin/claude-worker"}
	options.update(config_overrides)
	monitor = OrchestratorMonitor(
		OrchestratorConfig(**options),
		supervisor=Supervisor(spawn=spawner),
		watchdog_interval=watchdog_interval,
	)
	return monitor, spawner


def capture_tools(register_fn: Callable, *args) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		register_fn: The registration function (e.g., register_task_tools)
		args: Remaining arguments for the registration function

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self, name: Optional[str] = None):
			def decorator(fn):
				captured[name or fn.__name__] = fn
				return fn
			return decorator

		def resource(self, uri: str):
			def decorator(fn):
				captured[uri] = fn
				return fn
			return decorator

	register_fn(MockMCP(), *args)
	return captured
