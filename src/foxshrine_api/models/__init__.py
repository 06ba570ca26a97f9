"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from foxshrine_api.models.activity_log import ActivityLog
from foxshrine_api.models.configuration import ConfigurationEntry
from foxshrine_api.models.role import Permission, Role, role_permissions
from foxshrine_api.models.user import User
from foxshrine_api.models.user_session import UserSession

__all__ = [
    "ActivityLog",
    "ConfigurationEntry",
    "Permission",
    "Role",
    "User",
    "UserSession",
    "role_permissions",
]
