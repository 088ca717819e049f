"""Services for incremental Jira polling."""

from jira_poller.services.checkpoint import Checkpoint
from jira_poller.services.jira_client import (
    AuthError,
    FetchTimeoutError,
    InvalidIssueError,
    JiraClient,
    JiraClientError,
    MalformedQueryError,
    RemoteError,
    StallError,
)
from jira_poller.services.poller import IssuePoller, RunResult

__all__ = [
    "AuthError",
    "Checkpoint",
    "FetchTimeoutError",
    "InvalidIssueError",
    "IssuePoller",
    "JiraClient",
    "JiraClientError",
    "MalformedQueryError",
    "RemoteError",
    "RunResult",
    "StallError",
]
