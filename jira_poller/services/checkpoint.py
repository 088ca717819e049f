"""Checkpoint tracking for incremental issue polling."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

# JQL has no timezone-aware comparison, so the remote query looks back this far
# and exact filtering happens client-side against the true checkpoint.
SKEW_MARGIN = timedelta(hours=24)

MEMORY_KEY = "last_run"


def _normalize(value: datetime) -> datetime:
    """Coerce to UTC at second precision (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).replace(microsecond=0)


@dataclass(frozen=True)
class Checkpoint:
    """
    Last successful run timestamp.

    Immutable: a run receives one checkpoint and hands back either the same
    instance (on failure) or the result of `advance` (on success).
    """

    last_run: datetime | None = None

    def __post_init__(self) -> None:
        if self.last_run is not None:
            object.__setattr__(self, "last_run", _normalize(self.last_run))

    def current_bound(self) -> datetime | None:
        """Lower bound for the next run, or None to fetch everything."""
        return self.last_run

    def query_bound(self) -> datetime | None:
        """Lower bound used in the remote query, widened by the skew margin."""
        if self.last_run is None:
            return None
        return self.last_run - SKEW_MARGIN

    def advance(self, new_timestamp: datetime) -> "Checkpoint":
        return Checkpoint(last_run=new_timestamp)

    @classmethod
    def from_memory(cls, memory: Mapping[str, Any] | None) -> "Checkpoint":
        """Restore from the host's memory mapping."""
        raw = (memory or {}).get(MEMORY_KEY)
        if not raw:
            return cls()
        return cls(last_run=datetime.fromisoformat(str(raw).replace("Z", "+00:00")))

    def to_memory(self) -> dict[str, str]:
        if self.last_run is None:
            return {}
        return {MEMORY_KEY: self.last_run.isoformat()}
