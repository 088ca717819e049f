"""Background task scheduler for Jira polling."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jira_poller.config import get_settings
from jira_poller.schemas.event import IssueEvent
from jira_poller.services.checkpoint import Checkpoint
from jira_poller.services.poller import IssuePoller, RunResult

logger = logging.getLogger(__name__)
settings = get_settings()

EventSink = Callable[[IssueEvent], None]
CheckpointHook = Callable[[Checkpoint], None]

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


@dataclass
class PollState:
    """In-memory state carried between scheduled runs."""

    checkpoint: Checkpoint = field(default_factory=Checkpoint)
    last_event_at: datetime | None = None
    last_success_at: datetime | None = None
    last_error_at: datetime | None = None
    last_error: str | None = None

    def record_success(self, result: RunResult, at: datetime) -> None:
        """Adopt the advanced checkpoint once every event has been delivered."""
        self.checkpoint = result.checkpoint
        self.last_success_at = at
        if result.events:
            self.last_event_at = at

    def record_failure(self, error: Exception, at: datetime) -> None:
        self.last_error_at = at
        self.last_error = str(error)

    def is_working(
        self,
        now: datetime | None = None,
        expected_update_period_in_days: int = settings.expected_update_period_in_days,
    ) -> bool:
        """An event was emitted within the expected period and the last run did not fail."""
        now = now or datetime.now(UTC)
        if self.last_event_at is None:
            return False
        if now - self.last_event_at > timedelta(days=expected_update_period_in_days):
            return False
        if self.last_error_at is None:
            return True
        return self.last_success_at is not None and self.last_success_at > self.last_error_at


async def poll_job(
    poller: IssuePoller,
    state: PollState,
    sink: EventSink,
    on_checkpoint: CheckpointHook | None = None,
) -> RunResult | None:
    """
    Run one poll, hand its events to the sink, then report the new checkpoint.

    The state only adopts the advanced checkpoint after the sink and the
    checkpoint hook have both succeeded.
    """
    logger.info("Starting scheduled Jira poll")
    try:
        result = await poller.run(state.checkpoint)

        if not result.ok:
            state.record_failure(result.error, datetime.now(UTC))
            logger.error(
                f"Jira poll failed, checkpoint kept at {state.checkpoint.last_run}: {result.error} "
                f"(working={state.is_working()})"
            )
            return result

        for event in result.events:
            sink(event)
        if on_checkpoint is not None:
            on_checkpoint(result.checkpoint)
        state.record_success(result, datetime.now(UTC))
        logger.info(
            f"Jira poll emitted {len(result.events)} events, checkpoint {state.checkpoint.last_run} "
            f"(working={state.is_working()})"
        )
        return result
    except Exception as e:
        state.record_failure(e, datetime.now(UTC))
        logger.error(f"Jira poll failed: {e}", exc_info=True)
        return None


def setup_scheduler(
    poller: IssuePoller,
    state: PollState,
    sink: EventSink,
    on_checkpoint: CheckpointHook | None = None,
    interval_minutes: int = settings.poll_interval_minutes,
) -> AsyncIOScheduler:
    """Set up and start the polling scheduler (must be called with a running event loop)."""
    global scheduler

    scheduler = AsyncIOScheduler()

    # max_instances=1: runs never overlap, so the checkpoint has a single writer
    scheduler.add_job(
        poll_job,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[poller, state, sink, on_checkpoint],
        next_run_time=datetime.now(UTC),
        id="poll_jira_issues",
        name="Poll updated Jira issues",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started")

    return scheduler


def shutdown_scheduler() -> None:
    """Shut down the scheduler gracefully."""
    global scheduler

    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")
        scheduler = None
