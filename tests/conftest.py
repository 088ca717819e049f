"""Pytest fixtures for jira-poller tests."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from jira_poller.config import Settings
from jira_poller.services.jira_client import JiraClient

JIRA_URL = "https://jira.example.com"


def make_issue(key: str, updated: str) -> dict[str, Any]:
    """Minimal Jira issue document."""
    return {
        "expand": "editmeta,renderedFields,transitions,changelog,operations",
        "id": key.split("-")[1],
        "self": f"{JIRA_URL}/rest/api/2/issue/{key.split('-')[1]}",
        "key": key,
        "fields": {
            "summary": f"Issue {key}",
            "status": {"name": "Open"},
            "updated": updated,
        },
    }


class FakeJira:
    """Records search requests and answers them from a handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def start_ats(self) -> list[int]:
        return [int(r.url.params["startAt"]) for r in self.requests]


def paged(issues: list[dict[str, Any]], page_size: int = 2, total: int | None = None):
    """Handler serving `issues` in pages of `page_size` keyed on startAt."""
    declared = len(issues) if total is None else total

    def handler(request: httpx.Request) -> httpx.Response:
        start_at = int(request.url.params["startAt"])
        page = issues[start_at : start_at + page_size]
        return httpx.Response(
            200,
            json={"startAt": start_at, "maxResults": page_size, "total": declared, "issues": page},
        )

    return handler


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults."""
    return Settings(
        _env_file=None,
        jira_url=JIRA_URL,
        jira_jql="project = BAM",
        request_timeout_minutes=1,
    )


@pytest.fixture
def sample_issues() -> list[dict[str, Any]]:
    """Five issues, oldest first."""
    return [
        make_issue("BAM-1", "2024-01-09T10:00:00.000+0000"),
        make_issue("BAM-2", "2024-01-09T23:00:00.000+0000"),
        make_issue("BAM-3", "2024-01-10T00:30:00.000+0000"),
        make_issue("BAM-4", "2024-01-10T09:15:00.000+0200"),
        make_issue("BAM-5", "2024-01-11T08:00:00.000-0500"),
    ]


@pytest.fixture
def fake_jira_factory() -> Callable[..., FakeJira]:
    return FakeJira


@pytest.fixture
def paged_handler() -> Callable[..., Callable[[httpx.Request], httpx.Response]]:
    return paged


@pytest.fixture
def issue_factory() -> Callable[[str, str], dict[str, Any]]:
    return make_issue


@pytest.fixture
def make_client() -> Callable[..., JiraClient]:
    """Build a JiraClient wired to a fake transport."""

    def _make(fake: FakeJira, **kwargs: Any) -> JiraClient:
        kwargs.setdefault("username", "")
        kwargs.setdefault("password", "")
        return JiraClient(base_url=JIRA_URL, transport=fake.transport, **kwargs)

    return _make


@pytest.fixture
def checkpoint_time() -> datetime:
    return datetime(2024, 1, 10, 0, 0, 0, tzinfo=UTC)
