"""Pydantic v2 schemas for admin user, role and log endpoints."""

from datetime import datetime

from pydantic import Field

from foxshrine_api.models.activity_log import ActivityLog
from foxshrine_api.models.role import Role
from foxshrine_api.schemas.auth import UserResponse
from foxshrine_api.schemas.common import CamelModel, PaginationMeta


class RoleUpdateRequest(CamelModel):
    role_name: str = Field(min_length=1, max_length=50)


class RoleResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    permissions: list[str]

    @classmethod
    def from_role(cls, role: Role) -> "RoleResponse":
        return cls(id=role.id, name=role.name, description=role.description, permissions=role.permission_names)


class ActivityLogResponse(CamelModel):
    id: int
    user_id: int
    action: str
    details: str
    timestamp: datetime
    ip_address: str | None = None
    user_agent: str | None = None
    username: str | None = None
    email: str | None = None
    display_name: str | None = None

    @classmethod
    def from_row(
        cls,
        log: ActivityLog,
        username: str | None = None,
        email: str | None = None,
        display_name: str | None = None,
    ) -> "ActivityLogResponse":
        return cls(
            id=log.id,
            user_id=log.user_id,
            action=log.action,
            details=log.details,
            timestamp=log.timestamp,
            ip_address=log.ip_address,
            user_agent=log.user_agent,
            username=username,
            email=email,
            display_name=display_name,
        )


class UserListResponse(CamelModel):
    success: bool = True
    users: list[UserResponse]
    pagination: PaginationMeta


class UserRoleResponse(CamelModel):
    success: bool = True
    message: str
    user: UserResponse


class RoleListResponse(CamelModel):
    success: bool = True
    roles: list[RoleResponse]


class ActivityLogListResponse(CamelModel):
    success: bool = True
    logs: list[ActivityLogResponse]


class ConfigAuditResponse(CamelModel):
    success: bool = True
    data: list[ActivityLogResponse]
    key: str | None = None
    days: int
    timestamp: str
    count: int
