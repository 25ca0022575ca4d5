"""
Tests for the orchestrator monitor.

Tests:
- Dispatch order, capacity and dependency gating
- Launch failures without a worker path
- Slot refill on exit, stop and config change
- Watchdog timeouts and the periodic sweep
- Status queries and waiting for idle
"""

import asyncio

import pytest

from claude_code_orchestrator.orchestrator.monitor import OrchestratorConfig, OrchestratorMonitor
from claude_code_orchestrator.orchestrator.process import ProcessStatus
from tests.helpers import make_monitor, settle


async def finish(monitor: OrchestratorMonitor, spawner, process_id: str, code: int = 0) -> None:
	"""Exit a worker and wait until the monitor has reacted to it."""
	watcher = monitor.supervisor.watcher(process_id)
	spawner.worker_for(process_id).exit(code)
	await asyncio.wait_for(watcher, timeout=1)


class TestConfig:
	"""Tests for OrchestratorConfig."""

	def test_defaults(self):
		config = OrchestratorConfig()

		assert config.max_concurrent_processes >= 2
		assert config.process_timeout_ms == 20 * 60 * 1000
		assert config.interaction_timeout_ms == 5 * 60 * 1000
		assert config.cleanup_interval_ms == 10 * 60 * 1000
		assert config.old_process_max_age_ms == 60 * 60 * 1000
		assert config.worker_executable_path == ""
		assert config.worker_args == []

	def test_merged_returns_copy(self):
		config = OrchestratorConfig(max_concurrent_processes=2)
		merged = config.merged({"max_concurrent_processes": 6})

		assert merged.max_concurrent_processes == 6
		assert config.max_concurrent_processes == 2

	def test_merged_rejects_unknown_keys(self):
		with pytest.raises(ValueError, match="bogus"):
			OrchestratorConfig().merged({"bogus": 1})


class TestScheduling:
	"""Dispatch order and capacity."""

	@pytest.mark.asyncio
	async def test_task_runs_then_waits_then_resumes(self):
		monitor, spawner = make_monitor()
		task_id = monitor.queue.add_task("Implement login", 5, "implementer")

		assert monitor.get(task_id).status == ProcessStatus.PENDING

		assert await monitor.schedule_next() == [task_id]
		assert monitor.get(task_id).status == ProcessStatus.RUNNING

		spawner.worker_for(task_id).emit("continue? (Y/n)")
		await settle()
		assert monitor.get(task_id).status == ProcessStatus.WAITING
		assert monitor.get(task_id).waiting_since is not None

		assert monitor.send_input(task_id, "y") is True
		assert monitor.get(task_id).status == ProcessStatus.RUNNING
		assert monitor.get(task_id).waiting_since is None

	@pytest.mark.asyncio
	async def test_higher_priority_launches_first(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		t1 = monitor.queue.add_task("T1", 5)
		t2 = monitor.queue.add_task("T2", 9)

		assert await monitor.schedule_next() == [t2]

		assert monitor.get(t2).status == ProcessStatus.RUNNING
		assert monitor.get(t1).status == ProcessStatus.PENDING
		assert spawner.calls[0][2]["CLAUDE_ORCHESTRATOR_TASK"] == "T2"

	@pytest.mark.asyncio
	async def test_never_exceeds_max_concurrent(self):
		monitor, spawner = make_monitor(max_concurrent_processes=2)

		ids = [await monitor.submit(f"task {i}") for i in range(5)]

		assert monitor.queue.active_count() == 2
		assert len(spawner.calls) == 2
		assert [monitor.get(i).status for i in ids].count(ProcessStatus.PENDING) == 3

	@pytest.mark.asyncio
	async def test_waiting_workers_hold_their_slot(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		first = await monitor.submit("first")
		second = await monitor.submit("second")

		spawner.worker_for(first).emit("Do you want to proceed?")
		await settle()
		await monitor.schedule_next()

		assert monitor.get(first).status == ProcessStatus.WAITING
		assert monitor.get(second).status == ProcessStatus.PENDING

	@pytest.mark.asyncio
	async def test_exit_refills_slot(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		first = await monitor.submit("first")
		second = await monitor.submit("second")

		await finish(monitor, spawner, first)

		assert monitor.get(first).status == ProcessStatus.COMPLETED
		assert monitor.get(second).status == ProcessStatus.RUNNING

	@pytest.mark.asyncio
	async def test_exit_refills_slot_while_pipes_stay_open(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		first = await monitor.submit("first")
		second = await monitor.submit("second")
		watcher = monitor.supervisor.watcher(first)

		spawner.worker_for(first).exit(0, close_streams=False)
		await asyncio.wait_for(watcher, timeout=2)

		assert monitor.get(first).status == ProcessStatus.COMPLETED
		assert monitor.get(second).status == ProcessStatus.RUNNING

	@pytest.mark.asyncio
	async def test_dependent_task_starts_after_dependency_completes(self):
		monitor, spawner = make_monitor(max_concurrent_processes=4)
		first = await monitor.submit("build")
		second = await monitor.submit("test", 9, "tester", dependencies=[first])

		assert monitor.get(second).status == ProcessStatus.PENDING

		await finish(monitor, spawner, first)

		assert monitor.get(second).status == ProcessStatus.RUNNING

	@pytest.mark.asyncio
	async def test_failed_dependency_leaves_dependent_pending(self):
		monitor, spawner = make_monitor(max_concurrent_processes=4)
		first = await monitor.submit("build")
		second = await monitor.submit("test", dependencies=[first])

		await finish(monitor, spawner, first, code=1)

		assert monitor.get(first).status == ProcessStatus.FAILED
		assert monitor.get(second).status == ProcessStatus.PENDING
		assert [e.id for e in monitor.list_pending()] == [second]

	@pytest.mark.asyncio
	async def test_missing_worker_path_fails_closed(self):
		monitor, spawner = make_monitor(worker_executable_path="")

		task_id = await monitor.submit("t")

		record = monitor.get(task_id)
		assert record.status == ProcessStatus.FAILED
		assert "[ORCHESTRATOR] Error: worker executable path not set" in record.output
		assert spawner.calls == []
		assert not monitor.has_watchdog(task_id)

	@pytest.mark.asyncio
	async def test_worker_args_are_passed(self):
		monitor, spawner = make_monitor(worker_args=["--print", "--verbose"])

		await monitor.submit("t")

		command, args, _ = spawner.calls[0]
		assert command == "/usr/bin/claude-worker"
		assert args == ["--print", "--verbose"]

	@pytest.mark.asyncio
	async def test_launch_arms_watchdog(self):
		monitor, _ = make_monitor()

		task_id = await monitor.submit("t")

		assert monitor.has_watchdog(task_id)


class TestUpdateConfig:
	"""Live configuration changes."""

	@pytest.mark.asyncio
	async def test_raising_capacity_dispatches_immediately(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		for i in range(3):
			await monitor.submit(f"task {i}")
		assert monitor.queue.active_count() == 1

		config = await monitor.update_config(max_concurrent_processes=3)

		assert config.max_concurrent_processes == 3
		assert monitor.get_config() is config
		assert monitor.queue.active_count() == 3

	@pytest.mark.asyncio
	async def test_lowering_capacity_keeps_live_workers(self):
		monitor, spawner = make_monitor(max_concurrent_processes=2)
		await monitor.submit("a")
		await monitor.submit("b")

		await monitor.update_config(max_concurrent_processes=1)

		assert monitor.queue.active_count() == 2
		assert not any(w.killed for w in spawner.workers)

	@pytest.mark.asyncio
	async def test_unknown_option_rejected(self):
		monitor, _ = make_monitor()

		with pytest.raises(ValueError):
			await monitor.update_config(max_parallel=3)

		assert monitor.config.max_concurrent_processes == 2

	@pytest.mark.asyncio
	async def test_cleanup_interval_change_keeps_sweep_running(self):
		monitor, _ = make_monitor()
		monitor.start()
		try:
			await monitor.update_config(cleanup_interval_ms=1000)
			assert monitor.is_running
		finally:
			monitor.stop()


class TestStopProcess:
	"""Stopping through the monitor."""

	@pytest.mark.asyncio
	async def test_stop_cancels_and_refills(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		first = await monitor.submit("first")
		second = await monitor.submit("second")

		assert await monitor.stop_process(first) is True

		assert monitor.get(first).status == ProcessStatus.CANCELED
		assert spawner.worker_for(first).killed
		assert not monitor.has_watchdog(first)
		assert monitor.get(second).status == ProcessStatus.RUNNING

	@pytest.mark.asyncio
	async def test_stop_unknown_process(self):
		monitor, _ = make_monitor()
		assert await monitor.stop_process("nope") is False

	def test_send_input_unknown_process(self):
		monitor, _ = make_monitor()
		assert monitor.send_input("nope", "y") is False


class TestWatchdog:
	"""Per-worker timeout enforcement."""

	@pytest.mark.asyncio
	async def test_running_timeout_cancels_worker(self):
		monitor, spawner = make_monitor(watchdog_interval=0.01, process_timeout_ms=0)

		task_id = await monitor.submit("slow task")
		await asyncio.sleep(0.1)

		record = monitor.get(task_id)
		assert record.status == ProcessStatus.CANCELED
		assert spawner.worker_for(task_id).killed
		assert not monitor.has_watchdog(task_id)

	@pytest.mark.asyncio
	async def test_waiting_timeout_cancels_worker(self):
		monitor, spawner = make_monitor(watchdog_interval=0.01, interaction_timeout_ms=0)

		task_id = await monitor.submit("asks a question")
		spawner.worker_for(task_id).emit("Enter your choice: ")
		await asyncio.sleep(0.1)

		assert monitor.get(task_id).status == ProcessStatus.CANCELED

	@pytest.mark.asyncio
	async def test_timeout_frees_slot_for_next_task(self):
		monitor, spawner = make_monitor(
			watchdog_interval=0.01,
			max_concurrent_processes=1,
			interaction_timeout_ms=0,
		)
		first = await monitor.submit("first")
		second = await monitor.submit("second")

		spawner.worker_for(first).emit("[y/N]")
		await asyncio.sleep(0.1)

		assert monitor.get(first).status == ProcessStatus.CANCELED
		assert monitor.get(second).status == ProcessStatus.RUNNING

	@pytest.mark.asyncio
	async def test_watchdog_exits_after_worker_finishes(self):
		monitor, spawner = make_monitor(watchdog_interval=0.01)
		task_id = await monitor.submit("t")

		await finish(monitor, spawner, task_id)
		await asyncio.sleep(0.05)

		assert not monitor.has_watchdog(task_id)

	@pytest.mark.asyncio
	async def test_stop_disarms_watchdogs_without_killing(self):
		monitor, spawner = make_monitor()
		monitor.start()
		task_id = await monitor.submit("t")
		assert monitor.is_running
		assert monitor.has_watchdog(task_id)

		monitor.stop()

		assert not monitor.is_running
		assert not monitor.has_watchdog(task_id)
		assert not spawner.worker_for(task_id).killed
		assert monitor.get(task_id).status == ProcessStatus.RUNNING

	@pytest.mark.asyncio
	async def test_stopped_monitor_does_not_refill_on_exit(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		monitor.start()
		first = await monitor.submit("first")
		second = await monitor.submit("second")

		monitor.stop()
		await finish(monitor, spawner, first)

		assert len(spawner.calls) == 1
		assert monitor.get(second).status == ProcessStatus.PENDING
		assert not monitor.has_watchdog(second)

	@pytest.mark.asyncio
	async def test_restart_resumes_refill(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		monitor.start()
		first = await monitor.submit("first")
		second = await monitor.submit("second")
		third = await monitor.submit("third")
		monitor.stop()
		await finish(monitor, spawner, first)

		monitor.start()
		try:
			await monitor.schedule_next()
			assert monitor.get(second).status == ProcessStatus.RUNNING
			assert monitor.has_watchdog(second)

			await finish(monitor, spawner, second)
			assert monitor.get(third).status == ProcessStatus.RUNNING
		finally:
			monitor.stop()

	@pytest.mark.asyncio
	async def test_start_is_idempotent(self):
		monitor, _ = make_monitor()
		monitor.start()
		monitor.start()
		assert monitor.is_running
		monitor.stop()
		assert not monitor.is_running


class TestCleanupSweep:
	"""The periodic reaping of old records."""

	@pytest.mark.asyncio
	async def test_sweep_reaps_finished_records(self):
		monitor, spawner = make_monitor(cleanup_interval_ms=10, old_process_max_age_ms=0)
		task_id = await monitor.submit("t")
		await finish(monitor, spawner, task_id)

		monitor.start()
		try:
			await asyncio.sleep(0.1)
		finally:
			monitor.stop()

		assert monitor.get(task_id) is None

	@pytest.mark.asyncio
	async def test_sweep_keeps_live_records(self):
		monitor, _ = make_monitor(cleanup_interval_ms=10, old_process_max_age_ms=0)
		task_id = await monitor.submit("t")

		monitor.start()
		try:
			await asyncio.sleep(0.05)
		finally:
			monitor.stop()

		assert monitor.get(task_id).status == ProcessStatus.RUNNING


class TestQueries:
	"""Status queries."""

	@pytest.mark.asyncio
	async def test_status_summary(self):
		monitor, spawner = make_monitor(max_concurrent_processes=2)
		a = await monitor.submit("a")
		await monitor.submit("b")
		await monitor.submit("c")
		await finish(monitor, spawner, a)

		summary = monitor.status_summary()

		assert summary["total"] == 3
		assert summary["counts"]["completed"] == 1
		assert summary["counts"]["running"] == 2
		assert summary["counts"]["pending"] == 0
		assert summary["queued"] == 0
		assert summary["active"] == 2
		assert summary["max_concurrent"] == 2
		assert summary["available_slots"] == 0
		assert summary["monitor_running"] is False

	@pytest.mark.asyncio
	async def test_lists_and_lookups(self):
		monitor, _ = make_monitor(max_concurrent_processes=1)
		running = await monitor.submit("a")
		queued = await monitor.submit("b")

		assert {r.id for r in monitor.list_all()} == {running, queued}
		assert [r.id for r in monitor.list_by_status(ProcessStatus.RUNNING)] == [running]
		assert [e.id for e in monitor.list_pending()] == [queued]
		assert monitor.runtime_seconds(running) == 0
		assert monitor.runtime_seconds("nope") is None

	@pytest.mark.asyncio
	async def test_update_priority_and_remove(self):
		monitor, _ = make_monitor(max_concurrent_processes=1)
		running = await monitor.submit("a")
		queued = await monitor.submit("b")

		assert monitor.update_priority(queued, 10) is True
		assert monitor.update_priority(running, 10) is False
		assert monitor.remove_task(queued) is True
		assert monitor.remove_task(running) is False
		assert monitor.get(queued) is None


class TestWaitUntilIdle:
	"""Blocking until all work has drained."""

	@pytest.mark.asyncio
	async def test_returns_when_workers_finish(self):
		monitor, spawner = make_monitor(max_concurrent_processes=1)
		first = await monitor.submit("first")
		second = await monitor.submit("second")

		async def drive():
			spawner.worker_for(first).exit(0)
			while len(spawner.workers) < 2:
				await asyncio.sleep(0.01)
			spawner.worker_for(second).exit(0)

		driver = asyncio.create_task(drive())
		await asyncio.wait_for(monitor.wait_until_idle(poll_interval=0.01), timeout=2)
		await driver

		assert monitor.get(first).status == ProcessStatus.COMPLETED
		assert monitor.get(second).status == ProcessStatus.COMPLETED

	@pytest.mark.asyncio
	async def test_auto_answer(self):
		monitor, spawner = make_monitor()
		task_id = await monitor.submit("asks")
		worker = spawner.worker_for(task_id)

		async def drive():
			worker.emit("Do you want to proceed? ")
			while not worker.stdin.written:
				await asyncio.sleep(0.01)
			worker.exit(0)

		driver = asyncio.create_task(drive())
		await asyncio.wait_for(monitor.wait_until_idle(poll_interval=0.01, auto_answer="yes"), timeout=2)
		await driver

		assert worker.stdin.text == "yes\n"
		assert monitor.get(task_id).status == ProcessStatus.COMPLETED

	@pytest.mark.asyncio
	async def test_unsatisfiable_dependency_does_not_block(self):
		monitor, _ = make_monitor()
		task_id = await monitor.submit("orphan", dependencies=["missing"])

		await asyncio.wait_for(monitor.wait_until_idle(poll_interval=0.01), timeout=1)

		assert monitor.get(task_id).status == ProcessStatus.PENDING
