"""Incremental Jira issue poller."""

__version__ = "0.1.0"
