"""Site configuration key/value rows."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, true
from sqlalchemy.orm import Mapped, mapped_column

from foxshrine_api.models.base import Base, CreatedAtMixin, IdMixin


class ConfigurationEntry(Base, IdMixin, CreatedAtMixin):
    """A single configuration value stored as text.

    ``key`` is unique across the table, so there is at most one active row
    per key. Deletion is soft (``is_active = False``); a later upsert of the
    same key reactivates the row.
    """

    __tablename__ = "configuration"

    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default="general", server_default="general", index=True
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
