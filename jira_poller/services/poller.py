"""Poll runs: fetch, post-filter and emit updated Jira issues."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from jira_poller.config import get_settings
from jira_poller.schemas.event import IssueEvent
from jira_poller.services.checkpoint import Checkpoint
from jira_poller.services.jira_client import InvalidIssueError, JiraClient, JiraClientError

logger = logging.getLogger(__name__)
settings = get_settings()


def parse_updated(value: Any) -> datetime | None:
    """Parse Jira's `updated` field (e.g. 2024-01-09T23:00:00.000+0000) to UTC."""
    if not value or not isinstance(value, str):
        return None
    for fmt in [
        "%Y-%m-%dT%H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
    ]:
        try:
            return datetime.strptime(value, fmt).astimezone(UTC)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def filter_updated_since(
    issues: list[dict[str, Any]], since: datetime | None
) -> list[dict[str, Any]]:
    """
    Keep issues whose own `updated` timestamp is strictly after `since`.

    This is the exact counterpart of the skew-widened remote query. With no
    bound every issue is kept.

    Raises:
        InvalidIssueError: An issue has no parseable `updated` field
    """
    if since is None:
        return list(issues)

    kept: list[dict[str, Any]] = []
    for issue in issues:
        raw = (issue.get("fields") or {}).get("updated")
        updated = parse_updated(raw)
        if updated is None:
            raise InvalidIssueError(f"Issue {issue.get('key')!r} has no valid updated field: {raw!r}")
        if updated > since:
            kept.append(issue)
    return kept


@dataclass
class RunResult:
    """Outcome of one poll run."""

    checkpoint: Checkpoint
    events: list[IssueEvent] = field(default_factory=list)
    fetched: int = 0
    error: JiraClientError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IssuePoller:
    """
    Runs one incremental poll against Jira.

    Features:
    - Checkpoint read at start, advanced to the run start time on success only
    - Events built after the fetch completes, never from a partial result
    """

    def __init__(
        self,
        client: JiraClient | None = None,
        jql: str = settings.jira_jql,
        timeout_minutes: float = settings.request_timeout_minutes,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.client = client or JiraClient()
        self.jql = jql
        self.timeout_minutes = timeout_minutes
        self.now = now

    async def run(self, checkpoint: Checkpoint) -> RunResult:
        """
        Fetch issues updated since the checkpoint and build their events.

        Returns:
            RunResult with the advanced checkpoint, or the unchanged input
            checkpoint and the error when the fetch or the post-filter failed
        """
        run_started_at = self.now()
        since = checkpoint.current_bound()
        logger.info(f"Starting Jira poll, last run: {since}")

        try:
            issues = await self.client.fetch_updated_issues(
                since=since,
                jql=self.jql,
                timeout_minutes=self.timeout_minutes,
            )
            updated = filter_updated_since(issues, since)
        except JiraClientError as e:
            logger.error(f"Jira poll failed: {e}")
            return RunResult(checkpoint=checkpoint, error=e)

        events = [IssueEvent(payload=issue) for issue in updated]
        logger.info(f"Jira poll complete: fetched={len(issues)} emitted={len(events)}")

        return RunResult(
            checkpoint=checkpoint.advance(run_started_at),
            events=events,
            fetched=len(issues),
        )
