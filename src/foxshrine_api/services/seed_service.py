"""Idempotent provisioning of roles, permissions and default site configuration."""

from types import MappingProxyType

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foxshrine_api.lib.config_store import DEFAULT_SITE_CONFIG, flatten_config, serialize_value
from foxshrine_api.models.base import utcnow
from foxshrine_api.models.configuration import ConfigurationEntry
from foxshrine_api.models.role import Permission, Role
from foxshrine_api.schemas.config import DEFAULT_CATEGORY

PERMISSIONS: MappingProxyType[str, str] = MappingProxyType(
    {
        "config.read": "Read site configuration",
        "config.write": "Create and update site configuration",
        "config.delete": "Delete site configuration",
        "users.read": "List users",
        "users.roles": "Change user roles",
        "logs.read": "Read activity and audit logs",
    }
)

ROLES: MappingProxyType[str, tuple[str, tuple[str, ...]]] = MappingProxyType(
    {
        "Super Admin": ("Full access", tuple(PERMISSIONS)),
        "Admin": (
            "Site administration",
            ("config.read", "config.write", "config.delete", "users.read", "users.roles", "logs.read"),
        ),
        "Moderator": ("Content moderation", ("config.read", "config.write", "users.read", "logs.read")),
        "Member": ("Registered community member", ("config.read",)),
    }
)

SEED_UPDATED_BY = "seed"


async def seed_roles(session: AsyncSession) -> tuple[int, int]:
    """Create missing permissions and roles and grant role permissions.

    Existing rows are kept; missing grants are added.

    Returns:
        Tuple of (permissions created, roles created).
    """
    result = await session.execute(select(Permission))
    permissions = {permission.name: permission for permission in result.scalars().all()}
    created_permissions = 0
    for name, description in PERMISSIONS.items():
        if name not in permissions:
            permissions[name] = Permission(name=name, description=description)
            session.add(permissions[name])
            created_permissions += 1

    result = await session.execute(select(Role))
    roles = {role.name: role for role in result.scalars().all()}
    created_roles = 0
    for name, (description, granted) in ROLES.items():
        role = roles.get(name)
        if role is None:
            role = Role(name=name, description=description, permissions=[])
            session.add(role)
            created_roles += 1
        held = {permission.name for permission in role.permissions}
        for permission_name in granted:
            if permission_name not in held:
                role.permissions.append(permissions[permission_name])

    await session.commit()
    logger.info(f"Seeded {created_permissions} permission(s) and {created_roles} role(s)")
    return created_permissions, created_roles


def _category_for(key: str) -> str:
    head, _, rest = key.partition(".")
    return head if rest else DEFAULT_CATEGORY


async def seed_default_config(session: AsyncSession) -> int:
    """Insert the built-in site configuration for keys with no row yet.

    Returns:
        Number of rows created.
    """
    result = await session.execute(select(ConfigurationEntry.key))
    existing = set(result.scalars().all())
    created = 0
    for key, value in flatten_config(DEFAULT_SITE_CONFIG):
        if key in existing:
            continue
        session.add(
            ConfigurationEntry(
                key=key,
                value=serialize_value(value),
                category=_category_for(key),
                is_active=True,
                updated_by=SEED_UPDATED_BY,
                updated_at=utcnow(),
            )
        )
        created += 1
    await session.commit()
    logger.info(f"Seeded {created} configuration key(s)")
    return created
