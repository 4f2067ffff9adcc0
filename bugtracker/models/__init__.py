"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from bugtracker.models.user import User  # noqa: F401
from bugtracker.models.project import Project, ProjectMember  # noqa: F401
from bugtracker.models.ticket import Ticket  # noqa: F401
from bugtracker.models.comment import Comment  # noqa: F401
from bugtracker.models.activity import Activity  # noqa: F401
from bugtracker.models.notification import Notification  # noqa: F401
