"""
Background jobs for catalog reconciliation and DCA execution.

Uses APScheduler to run two interval jobs inside the API process:
- **catalog_sync**: reconcile the catalog against the liquidity feed,
  first run shortly after start, then every ``SYNC_INTERVAL_MINUTES``
- **dca_tick**: execute due orders every ``SCHEDULER_INTERVAL_MINUTES``
- **On-demand**: either job can be triggered via ``run_now`` (admin API)

Only one process may run these jobs against a given database.
All times are UTC.
"""

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.application.dca.dtos import SyncResult, TickResult
from app.application.dca.execute_due_orders import ExecuteDueOrdersUseCase
from app.application.dca.sync_catalog import SyncCatalogUseCase

logger = logging.getLogger(__name__)

CATALOG_SYNC = "catalog_sync"
DCA_TICK = "dca_tick"


class TaskStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TaskResult:
    """Result of one job execution."""

    task_name: str
    status: TaskStatus
    started_at: str
    finished_at: Optional[str] = None
    duration_seconds: float = 0.0
    details: dict = field(default_factory=dict)
    error: Optional[str] = None


class BackgroundJobs:
    """Owns the APScheduler instance and both recurring jobs.

    Usage:
        jobs = BackgroundJobs(sync_use_case, tick_use_case)
        jobs.start()                 # begin both interval jobs
        jobs.run_now("catalog_sync") # trigger a pass immediately
        jobs.stop()                  # shutdown without waiting
    """

    def __init__(
        self,
        sync_catalog: SyncCatalogUseCase,
        execute_due_orders: ExecuteDueOrdersUseCase,
        sync_interval_minutes: int = 30,
        tick_interval_minutes: int = 60,
        initial_delay_seconds: int = 5,
        max_history: int = 200,
    ) -> None:
        self._sync_catalog = sync_catalog
        self._execute_due_orders = execute_due_orders
        self._sync_interval = sync_interval_minutes
        self._tick_interval = tick_interval_minutes
        self._initial_delay = initial_delay_seconds
        self._max_history = max_history
        self._task_history: list[TaskResult] = []
        self._lock = threading.Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    @property
    def task_history(self) -> list[TaskResult]:
        with self._lock:
            return list(self._task_history)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the scheduler with both jobs."""
        if self._scheduler is not None:
            logger.warning("Background jobs already running.")
            return

        scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        first_sync = datetime.now(timezone.utc) + timedelta(
            seconds=self._initial_delay
        )
        scheduler.add_job(
            self._task_catalog_sync,
            IntervalTrigger(minutes=self._sync_interval),
            id=CATALOG_SYNC,
            name="Catalog reconciliation",
            next_run_time=first_sync,
        )
        scheduler.add_job(
            self._task_dca_tick,
            IntervalTrigger(minutes=self._tick_interval),
            id=DCA_TICK,
            name="DCA order execution",
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Background jobs started: sync every %d min, tick every %d min.",
            self._sync_interval,
            self._tick_interval,
        )

    def stop(self) -> None:
        """Stop the scheduler. A job already running finishes on its own."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Background jobs stopped.")

    def run_now(self, task_name: str) -> TaskResult:
        """Execute a named job immediately (blocking).

        Args:
            task_name: ``"catalog_sync"`` or ``"dca_tick"``.
        """
        task_map = {
            CATALOG_SYNC: self._task_catalog_sync,
            DCA_TICK: self._task_dca_tick,
        }
        fn = task_map.get(task_name)
        if fn is None:
            return TaskResult(
                task_name=task_name,
                status=TaskStatus.FAILED,
                started_at=datetime.now(timezone.utc).isoformat(),
                error=f"Unknown task: {task_name}. "
                      f"Available: {list(task_map.keys())}",
            )
        return fn()

    # ------------------------------------------------------------------
    # Task implementations
    # ------------------------------------------------------------------

    def _task_catalog_sync(self) -> TaskResult:
        return self._run_task(CATALOG_SYNC, self._sync_catalog.execute, _sync_status)

    def _task_dca_tick(self) -> TaskResult:
        return self._run_task(DCA_TICK, self._execute_due_orders.execute, _tick_status)

    def _run_task(
        self,
        name: str,
        fn: Callable[[], Any],
        classify: Callable[[Any], TaskStatus],
    ) -> TaskResult:
        start = time.monotonic()
        started_at = datetime.now(timezone.utc).isoformat()
        try:
            outcome = fn()
            task_result = TaskResult(
                task_name=name,
                status=classify(outcome),
                started_at=started_at,
                finished_at=datetime.now(timezone.utc).isoformat(),
                duration_seconds=round(time.monotonic() - start, 2),
                details=asdict(outcome),
                error=getattr(outcome, "error", None),
            )
        except Exception as exc:
            task_result = TaskResult(
                task_name=name,
                status=TaskStatus.FAILED,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc).isoformat(),
                duration_seconds=round(time.monotonic() - start, 2),
                error=str(exc),
            )
            logger.exception("Background task %s failed.", name)

        self._record_result(task_result)
        return task_result

    def _record_result(self, result: TaskResult) -> None:
        with self._lock:
            self._task_history.append(result)
            if len(self._task_history) > self._max_history:
                self._task_history = self._task_history[-self._max_history:]

    # ------------------------------------------------------------------
    # Status & introspection
    # ------------------------------------------------------------------

    def get_scheduled_jobs(self) -> list[dict]:
        """Return info about all scheduled jobs."""
        if self._scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": str(job.next_run_time),
                "trigger": str(job.trigger),
            }
            for job in self._scheduler.get_jobs()
        ]

    def get_status(self) -> dict:
        """Return the scheduler status summary."""
        recent = self.task_history[-10:]
        return {
            "running": self.is_running,
            "jobs": self.get_scheduled_jobs(),
            "recent_tasks": [
                {
                    "task": r.task_name,
                    "status": r.status.value,
                    "duration": r.duration_seconds,
                    "started_at": r.started_at,
                    "error": r.error,
                }
                for r in recent
            ],
        }


def _sync_status(result: SyncResult) -> TaskStatus:
    if result.skipped:
        return TaskStatus.SKIPPED
    return TaskStatus.COMPLETED if result.success else TaskStatus.FAILED


def _tick_status(result: TickResult) -> TaskStatus:
    if result.skipped:
        return TaskStatus.SKIPPED
    # Nothing persisted at all: the store is down.
    if result.errors and not (result.completed or result.failed):
        return TaskStatus.FAILED
    return TaskStatus.COMPLETED
