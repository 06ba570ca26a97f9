"""Persisted login sessions (access/refresh token pairs)."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, true
from sqlalchemy.orm import Mapped, mapped_column

from foxshrine_api.models.base import Base, CreatedAtMixin, IdMixin


class UserSession(Base, IdMixin, CreatedAtMixin):
    """One issued token pair.

    Logout flips ``is_active`` instead of deleting the row. ``version`` is
    bumped on every refresh rotation and checked in the rotating UPDATE.
    """

    __tablename__ = "user_sessions"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    session_token: Mapped[str] = mapped_column(String(1024), nullable=False, index=True)
    refresh_token: Mapped[str] = mapped_column(String(1024), nullable=False, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
