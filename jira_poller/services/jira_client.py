"""Jira REST client with incremental, bounded pagination."""

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx

from jira_poller import __version__
from jira_poller.config import get_settings
from jira_poller.schemas.search import SearchPage
from jira_poller.services.checkpoint import SKEW_MARGIN

logger = logging.getLogger(__name__)
settings = get_settings()

SEARCH_PATH = "/rest/api/2/search"
MAX_EMPTY_REQUESTS = 10


class JiraClientError(Exception):
    """Base exception for Jira client errors."""

    pass


class RemoteError(JiraClientError):
    """The search endpoint answered with a non-success status or an unusable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedQueryError(RemoteError):
    """Jira rejected the query (HTTP 400), usually invalid JQL."""

    pass


class AuthError(RemoteError):
    """Credentials were rejected."""

    pass


class StallError(JiraClientError):
    """The server keeps reporting results but returns empty pages."""

    pass


class FetchTimeoutError(JiraClientError, TimeoutError):
    """The run exceeded its time budget."""

    pass


class InvalidIssueError(JiraClientError):
    """An issue lacks the mandatory `updated` timestamp."""

    pass


def build_jql(jql: str, since: datetime | None) -> str:
    """
    Compose the search query.

    Args:
        jql: User-supplied filter, may be empty
        since: Already skew-corrected lower bound, or None for no bound

    Returns:
        The JQL text; an empty string matches everything
    """
    jql = jql.strip()
    if since is None:
        return jql

    bound = f"updated >= '{since.strftime('%Y-%m-%d %H:%M')}'"
    if jql:
        return f"({jql}) and {bound}"
    return bound


class JiraClient:
    """
    Client for the Jira issue search API.

    Features:
    - Optional HTTP basic auth
    - Incremental fetch via an `updated >=` JQL bound with a 24h skew margin
    - Wall-clock time budget and empty-page stall detection per run
    """

    def __init__(
        self,
        base_url: str = settings.jira_url,
        username: str = settings.jira_username,
        password: str = settings.jira_password,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.transport = transport
        self.clock = clock

        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": f"jira-poller/{__version__}",
        }
        self.auth: tuple[str, str] | None = (username, password) if username else None

    @property
    def search_url(self) -> str:
        return f"{self.base_url}{SEARCH_PATH}"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.request_timeout,
            headers=self.headers,
            auth=self.auth,
            transport=self.transport,
        )

    @staticmethod
    def _error_messages(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and "errorMessages" in body:
            return body["errorMessages"]
        return body

    async def _get_page(self, client: httpx.AsyncClient, jql: str, start_at: int) -> SearchPage:
        """Request one page and map failures onto the error taxonomy."""
        params: dict[str, Any] = {
            "jql": jql,
            "fields": "*all",
            "startAt": start_at,
        }

        try:
            response = await client.get(self.search_url, params=params)
        except httpx.RequestError as e:
            raise RemoteError(f"Request failed: {e}") from e

        status = response.status_code
        if status == 400:
            raise MalformedQueryError(
                f"Jira error: {self._error_messages(response)} (jql: {jql!r})",
                status_code=status,
            )
        if status in (401, 403):
            raise AuthError(f"Authentication failed: HTTP {status}", status_code=status)
        if not response.is_success:
            raise RemoteError(f"Request failed: HTTP {status}: {response.text}", status_code=status)

        try:
            return SearchPage.model_validate(response.json())
        except ValueError as e:
            raise RemoteError(f"Unexpected search response: {e}", status_code=status) from e

    async def search_page(self, jql: str = "", start_at: int = 0) -> SearchPage:
        """Fetch a single search page."""
        async with self._http_client() as client:
            return await self._get_page(client, jql, start_at)

    async def fetch_updated_issues(
        self,
        since: datetime | None = None,
        jql: str = "",
        timeout_minutes: float = settings.request_timeout_minutes,
    ) -> list[dict[str, Any]]:
        """
        Fetch every issue matching the filter and updated around `since`.

        The query bound is `since - 24h`, so the result is over-inclusive and
        callers must re-filter on each issue's own `updated` field.

        Args:
            since: Last successful run timestamp, or None to fetch everything
            jql: Optional user filter
            timeout_minutes: Time budget for the whole pagination loop

        Returns:
            All matching issues, in server order

        Raises:
            RemoteError: Non-success response (MalformedQueryError, AuthError)
            StallError: More than MAX_EMPTY_REQUESTS empty pages
            FetchTimeoutError: Budget exhausted before the next request
        """
        query_since = since - SKEW_MARGIN if since is not None else None
        query = build_jql(jql, query_since)
        budget = timeout_minutes * 60

        issues: list[dict[str, Any]] = []
        start_at = 0
        empty_pages = 0
        started = self.clock()

        logger.info(f"Fetching Jira issues: jql={query!r}")

        async with self._http_client() as client:
            while True:
                elapsed = self.clock() - started
                if elapsed > budget:
                    raise FetchTimeoutError(
                        f"Timeout exceeded while fetching issues ({elapsed:.0f}s > {budget:.0f}s, "
                        f"{start_at} fetched)"
                    )

                page = await self._get_page(client, query, start_at)

                # Cumulative over the run, not consecutive
                if not page.issues:
                    empty_pages += 1
                if empty_pages > MAX_EMPTY_REQUESTS:
                    raise StallError(
                        f"There is no progress while fetching issues "
                        f"({start_at} of {page.total} after {empty_pages} empty pages)"
                    )

                issues.extend(page.issues)
                start_at += len(page.issues)
                logger.debug(f"Fetched page: {len(page.issues)} issues, {start_at}/{page.total}")

                if start_at >= page.total:
                    break

        logger.info(f"Fetched {len(issues)} Jira issues")
        return issues
