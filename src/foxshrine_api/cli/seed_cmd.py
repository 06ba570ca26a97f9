"""CLI command provisioning roles, permissions and default site configuration."""

import asyncio

import typer


def seed(
    skip_config: bool = typer.Option(
        False,
        "--skip-config",
        help="Only provision roles and permissions",
    ),
) -> None:
    """Provision roles, permissions and the default site configuration (idempotent)."""
    asyncio.run(_seed(skip_config=skip_config))


async def _seed(*, skip_config: bool = False) -> None:
    from foxshrine_api.core.config import get_settings
    from foxshrine_api.core.database import dispose_engine, get_session_factory, init_engine
    from foxshrine_api.services import seed_service

    settings = get_settings()
    init_engine(settings.sqlalchemy_url, pool_size=settings.db_pool_size)

    try:
        factory = get_session_factory()
        async with factory() as session:
            permissions, roles = await seed_service.seed_roles(session)
            typer.echo(f"Permissions created: {permissions}, roles created: {roles}")
            if not skip_config:
                created = await seed_service.seed_default_config(session)
                typer.echo(f"Configuration keys created: {created}")
    finally:
        await dispose_engine()
