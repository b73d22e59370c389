"""
Tests for the APScheduler-backed background jobs.
"""

from app.application.dca.dtos import SyncResult, TickResult
from app.infrastructure.scheduling.jobs import (
    CATALOG_SYNC,
    DCA_TICK,
    BackgroundJobs,
    TaskStatus,
)


class FakeSync:
    def __init__(self, result: SyncResult | None = None, error: Exception | None = None):
        self.result = result or SyncResult(success=True, pairs_updated=2)
        self.error = error

    def execute(self) -> SyncResult:
        if self.error is not None:
            raise self.error
        return self.result


class FakeTick:
    def __init__(self, result: TickResult | None = None):
        self.result = result or TickResult(orders_found=1, completed=1)

    def execute(self) -> TickResult:
        return self.result


def _jobs(sync=None, tick=None, **kwargs) -> BackgroundJobs:
    return BackgroundJobs(
        sync_catalog=sync or FakeSync(), execute_due_orders=tick or FakeTick(), **kwargs
    )


class TestRunNow:
    """Tests for BackgroundJobs.run_now."""

    def test_catalog_sync_records_details(self) -> None:
        jobs = _jobs()

        result = jobs.run_now(CATALOG_SYNC)

        assert result.status is TaskStatus.COMPLETED
        assert result.details["pairs_updated"] == 2
        assert jobs.task_history == [result]

    def test_failed_sync_result_is_failed_task(self) -> None:
        sync = FakeSync(SyncResult(success=False, reason="feed_unavailable", error="HTTP 503"))

        result = _jobs(sync=sync).run_now(CATALOG_SYNC)

        assert result.status is TaskStatus.FAILED
        assert result.error == "HTTP 503"

    def test_skipped_outcomes(self) -> None:
        sync = FakeSync(SyncResult(success=True, skipped=True, reason="gateway_disabled"))
        tick = FakeTick(TickResult(skipped=True))
        jobs = _jobs(sync=sync, tick=tick)

        assert jobs.run_now(CATALOG_SYNC).status is TaskStatus.SKIPPED
        assert jobs.run_now(DCA_TICK).status is TaskStatus.SKIPPED

    def test_tick_that_persisted_nothing_is_failed(self) -> None:
        tick = FakeTick(TickResult(orders_found=3, errors=3))

        result = _jobs(tick=tick).run_now(DCA_TICK)

        assert result.status is TaskStatus.FAILED
        assert result.details["errors"] == 3

    def test_tick_with_some_store_errors_still_completes(self) -> None:
        tick = FakeTick(TickResult(orders_found=3, completed=1, failed=1, errors=1))
        assert _jobs(tick=tick).run_now(DCA_TICK).status is TaskStatus.COMPLETED

    def test_exception_is_recorded_not_raised(self) -> None:
        jobs = _jobs(sync=FakeSync(error=RuntimeError("boom")))

        result = jobs.run_now(CATALOG_SYNC)

        assert result.status is TaskStatus.FAILED
        assert result.error == "boom"

    def test_unknown_task(self) -> None:
        result = _jobs().run_now("retrain")
        assert result.status is TaskStatus.FAILED
        assert "Unknown task" in result.error

    def test_history_is_bounded(self) -> None:
        jobs = _jobs(max_history=3)
        for _ in range(5):
            jobs.run_now(DCA_TICK)
        assert len(jobs.task_history) == 3


class TestLifecycle:
    """Tests for start/stop and status reporting."""

    def test_start_registers_both_jobs(self) -> None:
        jobs = _jobs(initial_delay_seconds=3600)
        jobs.start()
        try:
            status = jobs.get_status()
            assert status["running"] is True
            assert {job["id"] for job in status["jobs"]} == {CATALOG_SYNC, DCA_TICK}
        finally:
            jobs.stop()

        assert jobs.is_running is False
        assert jobs.get_scheduled_jobs() == []

    def test_stop_without_start_is_harmless(self) -> None:
        jobs = _jobs()
        jobs.stop()
        assert jobs.get_status()["running"] is False
