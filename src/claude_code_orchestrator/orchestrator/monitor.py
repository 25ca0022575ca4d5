"""
Orchestrator Monitor - Schedules queued tasks onto worker processes.

Responsibilities:
- Bound the number of live workers
- Pull eligible tasks off the queue whenever a slot opens
- Watch each worker for running and interaction timeouts
- Periodically reap old finished records
"""

import asyncio
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Optional

from .process import (
	TERMINAL_STATUSES,
	ProcessRecord,
	ProcessStatus,
	Supervisor,
	has_timed_out,
	runtime_seconds,
)
from .queue import DEFAULT_PRIORITY, QueueEntry, TaskQueue
from .roles import DEFAULT_ROLE_ID

logger = logging.getLogger(__name__)

WATCHDOG_INTERVAL = 10.0  # seconds between timeout checks per worker


def _default_max_concurrent() -> int:
	cpus = os.cpu_count() or 1
	return max(2, cpus - 2 if cpus > 4 else 2)


@dataclass
class OrchestratorConfig:
	"""Runtime-tunable orchestrator settings. Durations are milliseconds."""
	max_concurrent_processes: int = field(default_factory=_default_max_concurrent)
	process_timeout_ms: int = 20 * 60 * 1000  # 20 minutes
	interaction_timeout_ms: int = 5 * 60 * 1000  # 5 minutes
	cleanup_interval_ms: int = 10 * 60 * 1000  # 10 minutes
	old_process_max_age_ms: int = 60 * 60 * 1000  # 1 hour
	worker_executable_path: str = ""  # must be set before anything can launch
	worker_args: list[str] = field(default_factory=list)

	def merged(self, changes: dict) -> "OrchestratorConfig":
		"""Return a copy with changes applied; unknown option names are rejected."""
		known = {f.name for f in fields(self)}
		unknown = set(changes) - known
		if unknown:
			raise ValueError(f"Unknown orchestrator option(s): {', '.join(sorted(unknown))}")
		return replace(self, **changes)

	def to_dict(self) -> dict:
		return asdict(self)


class OrchestratorMonitor:
	"""
	Control loop coordinating the task queue and the process supervisor.

	All state lives on one event loop. The drain loop is serialized with an
	asyncio.Lock so a spawn in flight never lets a second caller over-commit
	a slot.
	"""

	def __init__(
		self,
		config: Optional[OrchestratorConfig] = None,
		supervisor: Optional[Supervisor] = None,
		watchdog_interval: float = WATCHDOG_INTERVAL,
	):
		"""
		Initialize the monitor.

		Args:
			config: Initial configuration (defaults when omitted)
			supervisor: Process supervisor; its on_exit hook is taken over
			watchdog_interval: Seconds between per-worker timeout checks
		"""
		self.config = config or OrchestratorConfig()
		self.queue = TaskQueue()
		self.supervisor = supervisor or Supervisor()
		self.supervisor.on_exit = self._on_process_exit
		self.watchdog_interval = watchdog_interval

		self._cleanup_task: Optional[asyncio.Task] = None
		self._watchdogs: dict[str, asyncio.Task] = {}
		self._schedule_lock = asyncio.Lock()
		self._stopped = False

		logger.info(
			f"Initialized orchestrator monitor with {self.config.max_concurrent_processes} max concurrent processes"
		)

	# Lifecycle

	def start(self) -> None:
		"""Arm the periodic sweep. Must be called from a running event loop."""
		self._stopped = False
		if self._cleanup_task is not None:
			return
		self._cleanup_task = asyncio.create_task(self._cleanup_loop())
		logger.info("Orchestrator monitor started")

	def stop(self) -> None:
		"""
		Disarm the periodic sweep and every watchdog.

		Live workers are left running. Exits no longer refill slots until
		start() is called again.
		"""
		self._stopped = True
		if self._cleanup_task is not None:
			self._cleanup_task.cancel()
			self._cleanup_task = None

		for task in self._watchdogs.values():
			task.cancel()
		self._watchdogs.clear()

		logger.info("Orchestrator monitor stopped")

	@property
	def is_running(self) -> bool:
		return self._cleanup_task is not None

	async def _cleanup_loop(self) -> None:
		while True:
			try:
				await asyncio.sleep(self.config.cleanup_interval_ms / 1000)
				self.queue.reap_old(self.config.old_process_max_age_ms)
				await self.schedule_next()
			except asyncio.CancelledError:
				break
			except Exception as e:
				logger.error(f"Cleanup sweep error: {e}")

	# Configuration

	def get_config(self) -> OrchestratorConfig:
		return self.config

	async def update_config(self, **changes) -> OrchestratorConfig:
		"""
		Merge changes into the live config.

		Raising max_concurrent_processes fills the new slots immediately.

		Raises:
			ValueError: If an option name is not recognized
		"""
		old = self.config
		self.config = old.merged(changes)
		logger.info(f"Updated orchestrator configuration: {', '.join(sorted(changes)) or 'no changes'}")

		if self.config.cleanup_interval_ms != old.cleanup_interval_ms and self._cleanup_task is not None:
			self._cleanup_task.cancel()
			self._cleanup_task = asyncio.create_task(self._cleanup_loop())

		if self.config.max_concurrent_processes > old.max_concurrent_processes:
			await self.schedule_next()

		return self.config

	# Submission and scheduling

	async def submit(
		self,
		task: str,
		priority: int = DEFAULT_PRIORITY,
		role_id: str = DEFAULT_ROLE_ID,
		working_directory: Optional[str] = None,
		dependencies: Optional[list[str]] = None,
	) -> str:
		"""
		Queue a task and try to dispatch eligible work.

		Returns:
			The new process id
		"""
		task_id = self.queue.add_task(task, priority, role_id, working_directory, dependencies)
		await self.schedule_next()
		return task_id

	async def schedule_next(self) -> list[str]:
		"""
		Launch eligible tasks while slots are free.

		Returns:
			Ids of the tasks that were dispatched
		"""
		dispatched = []
		async with self._schedule_lock:
			while self.queue.has_capacity(self.config.max_concurrent_processes):
				entry = self.queue.next_eligible_task()
				if entry is None:
					break

				record = self.queue.by_id(entry.id)
				if record is None:
					logger.error(f"Process info not found for task ID {entry.id}, skipping")
					continue

				dispatched.append(record.id)
				if await self._launch(record) and not self._stopped:
					self._arm_watchdog(record.id)
		return dispatched

	async def _launch(self, record: ProcessRecord) -> bool:
		if not self.config.worker_executable_path:
			logger.error("Worker executable path not set, cannot launch process")
			record.status = ProcessStatus.FAILED
			record.annotate("\n[ORCHESTRATOR] Error: worker executable path not set")
			record.touch()
			return False

		return await self.supervisor.launch(
			record,
			self.config.worker_executable_path,
			list(self.config.worker_args),
		)

	async def _on_process_exit(self, record: ProcessRecord) -> None:
		if self._stopped:
			return
		await self.schedule_next()

	# Watchdogs

	def _arm_watchdog(self, process_id: str) -> None:
		self._cancel_watchdog(process_id)
		self._watchdogs[process_id] = asyncio.create_task(self._watch(process_id))

	def _cancel_watchdog(self, process_id: str) -> None:
		task = self._watchdogs.pop(process_id, None)
		if task is not None:
			task.cancel()

	async def _watch(self, process_id: str) -> None:
		"""Poll one worker until it times out or finishes, then refill slots."""
		try:
			while True:
				await asyncio.sleep(self.watchdog_interval)

				record = self.queue.by_id(process_id)
				if record is None:
					return

				if has_timed_out(record, self.config.process_timeout_ms, self.config.interaction_timeout_ms):
					logger.warning(f"Process {process_id} has timed out, stopping")
					self.supervisor.stop(record)
					await self.schedule_next()
					return

				if record.status in TERMINAL_STATUSES:
					await self.schedule_next()
					return
		finally:
			if self._watchdogs.get(process_id) is asyncio.current_task():
				del self._watchdogs[process_id]

	def has_watchdog(self, process_id: str) -> bool:
		return process_id in self._watchdogs

	# Commands on a single process

	async def stop_process(self, process_id: str) -> bool:
		"""
		Stop a worker and refill its slot.

		Returns:
			False if the id is unknown
		"""
		record = self.queue.by_id(process_id)
		if record is None:
			return False

		self.supervisor.stop(record)
		self._cancel_watchdog(process_id)
		await self.schedule_next()
		return True

	def send_input(self, process_id: str, text: str) -> bool:
		"""Deliver a line of input to a waiting worker."""
		record = self.queue.by_id(process_id)
		if record is None:
			return False
		return self.supervisor.send_input(record, text)

	def update_priority(self, task_id: str, priority: int) -> bool:
		return self.queue.update_priority(task_id, priority)

	def remove_task(self, task_id: str) -> bool:
		return self.queue.remove_task(task_id)

	# Status queries

	def get(self, process_id: str) -> Optional[ProcessRecord]:
		return self.queue.by_id(process_id)

	def list_all(self) -> list[ProcessRecord]:
		return list(self.queue.all().values())

	def list_by_status(self, status: ProcessStatus) -> list[ProcessRecord]:
		return self.queue.by_status(status)

	def list_pending(self) -> list[QueueEntry]:
		return self.queue.pending()

	def runtime_seconds(self, process_id: str) -> Optional[int]:
		record = self.queue.by_id(process_id)
		if record is None:
			return None
		return runtime_seconds(record)

	def status_summary(self) -> dict:
		"""Counts by status plus queue depth and slot usage."""
		counts = {status.value: 0 for status in ProcessStatus}
		for record in self.queue.all().values():
			counts[record.status.value] += 1

		active = self.queue.active_count()
		return {
			"counts": counts,
			"total": len(self.queue.all()),
			"queued": self.queue.pending_count(),
			"active": active,
			"max_concurrent": self.config.max_concurrent_processes,
			"available_slots": max(0, self.config.max_concurrent_processes - active),
			"monitor_running": self.is_running,
		}

	async def wait_until_idle(
		self,
		poll_interval: float = 0.5,
		auto_answer: Optional[str] = None,
	) -> None:
		"""
		Block until no worker is live and nothing more can be dispatched.

		Tasks whose dependencies can never complete are left pending.

		Args:
			poll_interval: Seconds between checks
			auto_answer: If set, sent to every worker found waiting for input
		"""
		while True:
			await self.schedule_next()
			if auto_answer is not None:
				for record in self.queue.by_status(ProcessStatus.WAITING):
					self.supervisor.send_input(record, auto_answer)
			if self.queue.active_count() == 0:
				return
			await asyncio.sleep(poll_interval)
