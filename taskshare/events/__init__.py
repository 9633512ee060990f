"""Task change events and their post-commit dispatch."""
from taskshare.events.types import TaskEvent, TaskEventType  # noqa: F401
