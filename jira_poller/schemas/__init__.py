"""Pydantic schemas for Jira responses and emitted events."""

from jira_poller.schemas.event import IssueEvent
from jira_poller.schemas.search import SearchPage

__all__ = ["IssueEvent", "SearchPage"]
