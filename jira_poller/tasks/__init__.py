"""Background polling tasks."""
