"""Pydantic schema for emitted issue events."""

from typing import Any

from pydantic import BaseModel


class IssueEvent(BaseModel):
    """
    Event emitted for one updated issue.

    The payload is the raw issue document as returned by the Jira REST API.
    """

    payload: dict[str, Any]

    @property
    def key(self) -> str | None:
        return self.payload.get("key")

    @property
    def updated(self) -> str | None:
        fields = self.payload.get("fields") or {}
        return fields.get("updated")
