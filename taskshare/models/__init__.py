"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from taskshare.models.user import User  # noqa: F401
from taskshare.models.task import Task, TaskShare  # noqa: F401
