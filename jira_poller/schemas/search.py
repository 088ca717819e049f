"""Pydantic schema for Jira search responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchPage(BaseModel):
    """One page of `/rest/api/2/search` results."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    issues: list[dict[str, Any]]
    total: int = Field(ge=0)
    start_at: int | None = Field(default=None, alias="startAt")
    max_results: int | None = Field(default=None, alias="maxResults")
