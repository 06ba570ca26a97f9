"""Authentication and user Pydantic v2 schemas.

Defines request/response schemas for registration, login, token refresh
and the request-scoped authenticated user.
"""

from datetime import datetime

from pydantic import EmailStr, Field

from foxshrine_api.core.security import TokenPair
from foxshrine_api.models.user import User
from foxshrine_api.schemas.common import CamelModel


class RegisterRequest(CamelModel):
    """Self-registration payload."""

    username: str = Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9]+$")
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    display_name: str | None = Field(default=None, min_length=1, max_length=100)


class LoginRequest(CamelModel):
    """Login with a username or an email address."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    """Token refresh request."""

    refresh_token: str | None = None


class TokenPairResponse(CamelModel):
    """JWT token pair as returned to clients."""

    access_token: str
    refresh_token: str

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(access_token=pair.access_token, refresh_token=pair.refresh_token)


class AuthenticatedUser(CamelModel):
    """User identity plus the permission set resolved for this request."""

    id: int
    username: str
    email: str
    display_name: str
    role: str
    permissions: list[str] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedUser":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            display_name=user.display_name,
            role=user.role_name,
            permissions=user.permission_names,
        )

    def has_permission(self, permission: str) -> bool:
        return permission in frozenset(self.permissions)


class AuthResponse(CamelModel):
    """Register/login response: profile plus tokens."""

    success: bool = True
    message: str
    user: AuthenticatedUser
    tokens: TokenPairResponse


class ProfileResponse(CamelModel):
    success: bool = True
    user: AuthenticatedUser


class RefreshResponse(CamelModel):
    success: bool = True
    tokens: TokenPairResponse


class UserResponse(CamelModel):
    """User row as listed in the admin area."""

    id: int
    username: str
    email: str
    display_name: str
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    role_name: str
    role_description: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            display_name=user.display_name,
            is_active=user.is_active,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            role_name=user.role.name,
            role_description=user.role.description,
        )
