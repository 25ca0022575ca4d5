"""Priority/dependency queue of pending tasks plus the registry of all process records."""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from .process import (
	ACTIVE_STATUSES,
	TERMINAL_STATUSES,
	ProcessRecord,
	ProcessStatus,
	create_process_record,
)
from .roles import DEFAULT_ROLE_ID

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 5


@dataclass
class QueueEntry:
	"""A task that has been submitted but not yet dispatched."""
	id: str
	task: str
	priority: int
	role_id: str
	working_directory: Optional[str] = None
	dependencies: list[str] = field(default_factory=list)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"task": self.task,
			"priority": self.priority,
			"role": self.role_id,
			"working_directory": self.working_directory,
			"dependencies": list(self.dependencies),
		}


class TaskQueue:
	"""
	Holds pending entries and every process record keyed by id.

	Entries leave the pending list the moment they are dispatched; the
	record outlives the entry until it is reaped.
	"""

	def __init__(self):
		self._pending: list[QueueEntry] = []
		self._processes: dict[str, ProcessRecord] = {}

	def add_task(
		self,
		task: str,
		priority: int = DEFAULT_PRIORITY,
		role_id: str = DEFAULT_ROLE_ID,
		working_directory: Optional[str] = None,
		dependencies: Optional[list[str]] = None,
	) -> str:
		"""
		Create a PENDING record and queue it.

		Returns:
			The new process id
		"""
		record = create_process_record(task, priority, role_id, working_directory, dependencies)
		self._processes[record.id] = record
		self._pending.append(QueueEntry(
			id=record.id,
			task=task,
			priority=priority,
			role_id=role_id,
			working_directory=working_directory,
			dependencies=list(record.dependencies),
		))

		logger.info(f"Added task to queue: {task} (ID: {record.id}, Priority: {priority}, Role: {role_id})")
		return record.id

	def _dependencies_met(self, entry: QueueEntry) -> bool:
		# Missing ids count as unmet, so a reaped or unknown dependency blocks forever
		for dep_id in entry.dependencies:
			dep = self._processes.get(dep_id)
			if dep is None or dep.status != ProcessStatus.COMPLETED:
				return False
		return True

	def next_eligible_task(self) -> Optional[QueueEntry]:
		"""
		Pop the highest-priority entry whose dependencies have all completed.

		Ties keep submission order. Returns None when nothing is eligible.
		"""
		if not self._pending:
			return None

		# list.sort is stable, so equal priorities stay in submission order
		self._pending.sort(key=lambda entry: entry.priority, reverse=True)

		for i, entry in enumerate(self._pending):
			if self._dependencies_met(entry):
				del self._pending[i]
				return entry

		return None

	def active_count(self) -> int:
		return sum(1 for record in self._processes.values() if record.status in ACTIVE_STATUSES)

	def has_capacity(self, max_concurrent: int) -> bool:
		return self.active_count() < max_concurrent

	def _find_pending(self, task_id: str) -> Optional[int]:
		for i, entry in enumerate(self._pending):
			if entry.id == task_id:
				return i
		return None

	def update_priority(self, task_id: str, priority: int) -> bool:
		"""Change the priority of a still-pending task."""
		index = self._find_pending(task_id)
		if index is None:
			return False

		self._pending[index].priority = priority
		record = self._processes.get(task_id)
		if record is not None:
			record.priority = priority
		logger.info(f"Updated priority for task {task_id} to {priority}")
		return True

	def remove_task(self, task_id: str) -> bool:
		"""Withdraw a still-pending task; its never-launched record goes with it."""
		index = self._find_pending(task_id)
		if index is None:
			return False

		del self._pending[index]
		record = self._processes.get(task_id)
		if record is not None and record.status == ProcessStatus.PENDING:
			del self._processes[task_id]
		logger.info(f"Removed task {task_id} from queue")
		return True

	def reap_old(self, max_age_ms: int, now: Optional[float] = None) -> int:
		"""
		Drop terminal records whose last activity is older than max_age_ms.

		Returns:
			Number of records removed
		"""
		now = time.time() if now is None else now
		expired = [
			process_id
			for process_id, record in self._processes.items()
			if record.status in TERMINAL_STATUSES
			and (now - record.last_activity) * 1000 > max_age_ms
		]
		for process_id in expired:
			del self._processes[process_id]

		if expired:
			logger.info(f"Cleaned up {len(expired)} old processes")
		return len(expired)

	def by_status(self, status: ProcessStatus) -> list[ProcessRecord]:
		return [record for record in self._processes.values() if record.status == status]

	def by_id(self, process_id: str) -> Optional[ProcessRecord]:
		return self._processes.get(process_id)

	def all(self) -> dict[str, ProcessRecord]:
		return self._processes

	def pending(self) -> list[QueueEntry]:
		"""Snapshot of the pending list in its current order."""
		return list(self._pending)

	def pending_count(self) -> int:
		return len(self._pending)
