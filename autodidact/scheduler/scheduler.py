"""Task scheduler - persistent recurring tasks driven by a cooperative tick loop."""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

from autodidact.errors import InvalidStateError, NotFoundError
from autodidact.ids import new_id
from autodidact.jsonio import atomic_write_json, read_json
from autodidact.scheduler.models import (
    Frequency,
    ScheduledTask,
    SchedulerStatus,
    TaskStatus,
    TaskType,
)
from autodidact.scheduler.timing import next_run_for

logger = logging.getLogger(__name__)

DEFAULT_TASKS: tuple[tuple[str, TaskType, str, Frequency], ...] = (
    ("Daily research", TaskType.RESEARCH, "AI developments", Frequency.daily(9)),
    ("Weekly reflection", TaskType.REFLECTION, "self-improvement", Frequency.weekly(0, 10)),
    ("Daily synthesis", TaskType.SYNTHESIS, "knowledge synthesis", Frequency.daily(20)),
    ("Health check", TaskType.HEALTH_CHECK, "system health", Frequency.hourly(1)),
)


class ScheduledTaskRunner(ABC):
    """Executes one scheduled task. Raising marks the run as failed."""

    @abstractmethod
    async def run_scheduled(self, task: ScheduledTask) -> Any:
        pass


@dataclass
class TickOutcome:
    task_id: str
    name: str
    success: bool
    error: str | None = None


class TaskScheduler:
    """Recurring tasks persisted in ``schedule.json``.

    The document holds the task list plus ``enabled`` and ``last_tick``.
    ``stop()`` from any process clears ``enabled``; a running loop exits
    on its next wake-up when it sees the flag cleared.
    """

    def __init__(
        self,
        storage_dir: Path,
        runner: ScheduledTaskRunner,
        tick_seconds: float = 60,
        retry_delay: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.runner = runner
        self.tick_seconds = tick_seconds
        self.retry_delay = retry_delay
        self.clock = clock
        self._path = self.storage_dir / "schedule.json"
        self._lock = threading.RLock()
        self._tick_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self._wake: asyncio.Event | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        data = read_json(self._path, default=None)
        if not isinstance(data, dict):
            data = {}
        tasks = []
        for raw in data.get("tasks", []):
            try:
                tasks.append(ScheduledTask.from_dict(raw))
            except (KeyError, ValueError, TypeError, InvalidStateError) as e:
                logger.warning("Skipping unreadable scheduled task: %s", e)
        last_tick = data.get("last_tick")
        return {
            "enabled": bool(data.get("enabled", False)),
            "last_tick": datetime.fromisoformat(last_tick) if last_tick else None,
            "tasks": tasks,
        }

    def _save(self, doc: dict[str, Any]) -> None:
        atomic_write_json(self._path, {
            "enabled": doc["enabled"],
            "last_tick": doc["last_tick"].isoformat() if doc["last_tick"] else None,
            "tasks": [t.to_dict() for t in doc["tasks"]],
        })

    # ------------------------------------------------------------------
    # Task management
    # ------------------------------------------------------------------

    def add_task(
        self,
        name: str,
        type: TaskType | str,
        topic: str,
        frequency: Frequency | str,
        enabled: bool = True,
        options: dict[str, Any] | None = None,
    ) -> ScheduledTask:
        try:
            task_type = TaskType(type)
        except ValueError as e:
            raise InvalidStateError(f"Unknown task type: {type}") from e
        if isinstance(frequency, str):
            frequency = Frequency.parse(frequency)

        now = self.clock()
        task = ScheduledTask(
            id=new_id(),
            name=name,
            type=task_type,
            topic=topic,
            frequency=frequency,
            next_run=next_run_for(frequency, now),
            enabled=enabled,
            created_at=now,
            options=dict(options or {}),
        )
        with self._lock:
            doc = self._load()
            doc["tasks"].append(task)
            self._save(doc)

        logger.info("Scheduled %s (%s, next run %s)", name, frequency.describe(), task.next_run)
        return task

    def remove_task(self, task_id: str) -> ScheduledTask:
        with self._lock:
            doc = self._load()
            for i, task in enumerate(doc["tasks"]):
                if task.id == task_id:
                    del doc["tasks"][i]
                    self._save(doc)
                    return task
        raise NotFoundError(f"Unknown scheduled task: {task_id}")

    def set_enabled(self, task_id: str, enabled: bool) -> ScheduledTask:
        with self._lock:
            doc = self._load()
            for task in doc["tasks"]:
                if task.id == task_id:
                    task.enabled = enabled
                    self._save(doc)
                    return task
        raise NotFoundError(f"Unknown scheduled task: {task_id}")

    def get_task(self, task_id: str) -> ScheduledTask:
        for task in self.list_tasks():
            if task.id == task_id:
                return task
        raise NotFoundError(f"Unknown scheduled task: {task_id}")

    def list_tasks(self) -> list[ScheduledTask]:
        with self._lock:
            return self._load()["tasks"]

    def add_default_tasks(self) -> list[ScheduledTask]:
        return [self.add_task(name, type_, topic, freq) for name, type_, topic, freq in DEFAULT_TASKS]

    def status(self, now: datetime | None = None) -> SchedulerStatus:
        now = now or self.clock()
        with self._lock:
            doc = self._load()
        return SchedulerStatus(
            enabled=doc["enabled"],
            running=self.running,
            last_tick=doc["last_tick"],
            tasks=[TaskStatus(task=t, due=t.is_due(now)) for t in doc["tasks"]],
        )

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    async def tick(self, now: datetime | None = None) -> list[TickOutcome]:
        """Run every enabled task whose ``next_run <= now``, in schedule order.

        Ticks never overlap: a second caller waits for the first to finish.
        """
        async with self._tick_lock:
            now = now or self.clock()
            with self._lock:
                due = [t for t in self._load()["tasks"] if t.is_due(now)]

            outcomes = []
            for task in due:
                logger.info("Running scheduled task %s (%s)", task.name, task.type.value)
                try:
                    await self.runner.run_scheduled(task)
                except Exception as e:
                    logger.warning("Scheduled task %s failed, retrying in %s: %s", task.name, self.retry_delay, e)
                    self._update_run(task.id, last_run=None, next_run=now + self.retry_delay)
                    outcomes.append(TickOutcome(task.id, task.name, success=False, error=str(e)))
                else:
                    self._update_run(task.id, last_run=now, next_run=next_run_for(task.frequency, now))
                    outcomes.append(TickOutcome(task.id, task.name, success=True))

            with self._lock:
                doc = self._load()
                doc["last_tick"] = now
                self._save(doc)
            return outcomes

    def _update_run(self, task_id: str, last_run: datetime | None, next_run: datetime) -> None:
        with self._lock:
            doc = self._load()
            for task in doc["tasks"]:
                if task.id == task_id:
                    if last_run is not None:
                        task.last_run = last_run
                    task.next_run = next_run
                    self._save(doc)
                    return
        logger.debug("Scheduled task %s removed while running", task_id)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def _set_enabled_flag(self, enabled: bool) -> None:
        with self._lock:
            doc = self._load()
            doc["enabled"] = enabled
            self._save(doc)

    async def start(self) -> None:
        """Tick now, then every ``tick_seconds``. No-op if already running."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        self._set_enabled_flag(True)
        self._wake = asyncio.Event()
        await self.tick()
        self._loop_task = asyncio.create_task(self._run_loop())
        logger.info("Scheduler started (tick every %ss)", self.tick_seconds)

    async def _run_loop(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.tick_seconds)
            except asyncio.TimeoutError:
                pass
            with self._lock:
                enabled = self._load()["enabled"]
            if not enabled:
                logger.info("Scheduler disabled, exiting loop")
                return
            try:
                await self.tick()
            except Exception as e:
                logger.error("Scheduler tick failed: %s", e)

    def stop(self) -> None:
        """Disable the schedule and wake the loop.

        A tick already in progress runs to completion; the loop exits
        right after it. Use ``wait()`` to block until then.
        """
        self._set_enabled_flag(False)
        if self._wake is not None:
            self._wake.set()
        logger.info("Scheduler stopped")

    async def wait(self) -> None:
        """Block until the loop exits (stop() or disabled on disk)."""
        if self._loop_task is None:
            return
        await self._loop_task
