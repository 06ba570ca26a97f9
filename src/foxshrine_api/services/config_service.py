"""Site configuration service.

Rows are stored flat (one text value per key) and materialized into a
nested object on read. Writes are upserts; deletes are soft.
"""

from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.core.errors import NotFoundError
from foxshrine_api.lib.config_store import build_config_object, serialize_value
from foxshrine_api.models.base import utcnow
from foxshrine_api.models.configuration import ConfigurationEntry
from foxshrine_api.schemas.auth import AuthenticatedUser
from foxshrine_api.schemas.config import (
    DEFAULT_CATEGORY,
    BulkConfigItem,
    ConfigEntryResponse,
    DeletedConfigResponse,
    StreamStatus,
    StreamStatusUpdateRequest,
)
from foxshrine_api.services import audit_service
from foxshrine_api.services.audit_service import RequestContext

STREAM_CATEGORY = "stream"

# Stream status fields and the canonical keys they are stored under
STREAM_STATUS_KEYS: dict[str, str] = {
    "is_live": "stream.isLive",
    "title": "stream.title",
    "category": "stream.category",
    "next_stream": "stream.nextStreamDate",
    "notification": "stream.notification",
}


async def list_active_entries(session: AsyncSession, category: str | None = None) -> list[ConfigurationEntry]:
    """List active rows ordered by id, optionally limited to one category."""
    query = select(ConfigurationEntry).where(ConfigurationEntry.is_active.is_(True))
    if category is not None:
        query = query.where(ConfigurationEntry.category == category)
    result = await session.execute(query.order_by(ConfigurationEntry.id))
    return list(result.scalars().all())


async def read_config(
    session: AsyncSession,
    actor: AuthenticatedUser | None = None,
    context: RequestContext | None = None,
) -> tuple[dict[str, Any], int]:
    """Materialize every active row into one nested object.

    Reads by an authenticated caller are audited.

    Returns:
        Tuple of (config object, number of rows read).
    """
    rows = [(entry.key, entry.value) for entry in await list_active_entries(session)]
    config = build_config_object(rows)
    if actor is not None:
        await audit_service.log_activity(
            session,
            user_id=actor.id,
            action=audit_service.CONFIG_READ,
            details="Retrieved configuration",
            context=context,
        )
    return config, len(rows)


async def read_category(session: AsyncSession, category: str) -> tuple[dict[str, Any], int]:
    """Materialize the active rows of one category."""
    rows = [(entry.key, entry.value) for entry in await list_active_entries(session, category)]
    return build_config_object(rows), len(rows)


def _apply(
    entry: ConfigurationEntry,
    stored: str,
    category: str,
    description: str | None,
    updated_by: str | None,
) -> None:
    entry.value = stored
    entry.category = category
    if description is not None:
        entry.description = description
    entry.is_active = True
    entry.updated_by = updated_by
    entry.updated_at = utcnow()


async def upsert_entry(
    session: AsyncSession,
    key: str,
    value: Any,
    *,
    category: str | None = None,
    description: str | None = None,
    updated_by: str | None = None,
) -> ConfigEntryResponse:
    """Insert or update the row for ``key`` and commit.

    An existing row (active or soft-deleted) is updated in place and
    reactivated. A description of None keeps the stored one.

    Args:
        session: The database session.
        key: Configuration key, stored as given.
        value: Any JSON-compatible value; serialized for storage.
        category: Row category (defaults to ``general``).
        description: Optional human description.
        updated_by: Username recorded as the last updater.

    Returns:
        The persisted row.
    """
    stored = serialize_value(value)
    category = category or DEFAULT_CATEGORY

    result = await session.execute(select(ConfigurationEntry).where(ConfigurationEntry.key == key))
    entry = result.scalar_one_or_none()
    if entry is None:
        entry = ConfigurationEntry(key=key)
        _apply(entry, stored, category, description, updated_by)
        session.add(entry)
        try:
            await session.commit()
        except IntegrityError:
            # Lost an insert race for the same key; update the winner's row
            await session.rollback()
            result = await session.execute(select(ConfigurationEntry).where(ConfigurationEntry.key == key))
            entry = result.scalar_one()
            _apply(entry, stored, category, description, updated_by)
            await session.commit()
    else:
        _apply(entry, stored, category, description, updated_by)
        await session.commit()

    return ConfigEntryResponse.model_validate(entry)


async def set_value(
    session: AsyncSession,
    key: str,
    value: Any,
    actor: AuthenticatedUser,
    *,
    category: str | None = None,
    description: str | None = None,
    context: RequestContext | None = None,
) -> ConfigEntryResponse:
    """Upsert one key and record it in both audit trails."""
    entry = await upsert_entry(
        session,
        key,
        value,
        category=category,
        description=description,
        updated_by=actor.username,
    )
    logger.info(f"Configuration {key} updated by {actor.username}")
    await audit_service.log_audit_trail(
        session, actor, audit_service.UPDATE_CONFIG, f"Updated {key} = {entry.value}", context
    )
    await audit_service.log_activity(
        session,
        user_id=actor.id,
        action=audit_service.CONFIG_UPDATE,
        details=f"Updated {key}",
        context=context,
    )
    return entry


async def bulk_set(
    session: AsyncSession,
    items: list[BulkConfigItem],
    actor: AuthenticatedUser,
    context: RequestContext | None = None,
) -> list[ConfigEntryResponse]:
    """Upsert each applicable item in order, committing one at a time.

    Items without a key or value are skipped. A failure part-way leaves
    the earlier items applied.
    """
    updated: list[ConfigEntryResponse] = []
    for item in items:
        if not item.is_applicable:
            continue
        updated.append(
            await upsert_entry(
                session,
                item.key,
                item.value,
                category=item.category,
                description=item.description,
                updated_by=actor.username,
            )
        )
    logger.info(f"{len(updated)} configuration keys updated by {actor.username}")
    await audit_service.log_activity(
        session,
        user_id=actor.id,
        action=audit_service.CONFIG_BULK_UPDATE,
        details=f"Updated {len(updated)} configurations",
        context=context,
    )
    return updated


async def delete_entry(
    session: AsyncSession,
    key: str,
    actor: AuthenticatedUser,
    context: RequestContext | None = None,
) -> DeletedConfigResponse:
    """Soft-delete the active row for ``key``.

    Returns:
        The row's key, value and category as they were before deletion.

    Raises:
        NotFoundError: If no active row holds ``key``.
    """
    result = await session.execute(
        select(ConfigurationEntry).where(ConfigurationEntry.key == key, ConfigurationEntry.is_active.is_(True))
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise NotFoundError("Configuration not found")

    deleted = DeletedConfigResponse(key=entry.key, value=entry.value, category=entry.category)
    entry.is_active = False
    entry.updated_by = actor.username
    entry.updated_at = utcnow()
    await session.commit()

    logger.info(f"Configuration {key} deleted by {actor.username}")
    await audit_service.log_audit_trail(session, actor, audit_service.DELETE_CONFIG, f"Deleted {key}", context)
    return deleted


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else serialize_value(value)


async def get_stream_status(session: AsyncSession) -> StreamStatus:
    """Read the live stream fields from the ``stream`` category."""
    config, _ = await read_category(session, STREAM_CATEGORY)
    stream = config.get("stream")
    if not isinstance(stream, dict):
        stream = {}
    return StreamStatus(
        is_live=stream.get("isLive") is True,
        title=_optional_text(stream.get("title")),
        category=_optional_text(stream.get("category")),
        next_stream=_optional_text(stream.get("nextStreamDate")),
        notification=_optional_text(stream.get("notification")),
    )


async def update_stream_status(
    session: AsyncSession,
    update: StreamStatusUpdateRequest,
    actor: AuthenticatedUser,
    context: RequestContext | None = None,
) -> list[ConfigEntryResponse]:
    """Upsert the supplied stream fields under their canonical keys.

    ``isLive`` is written whenever it is given; text fields only when
    non-empty.
    """
    updated: list[ConfigEntryResponse] = []
    for field, key in STREAM_STATUS_KEYS.items():
        value = getattr(update, field)
        if field == "is_live":
            if value is None:
                continue
        elif not value:
            continue
        updated.append(
            await upsert_entry(session, key, value, category=STREAM_CATEGORY, updated_by=actor.username)
        )

    changed = ", ".join(entry.key for entry in updated) or "nothing"
    logger.info(f"Stream status updated by {actor.username}: {changed}")
    await audit_service.log_activity(
        session,
        user_id=actor.id,
        action=audit_service.UPDATE_STREAM_STATUS,
        details=f"Updated stream status: {changed}",
        context=context,
    )
    return updated
