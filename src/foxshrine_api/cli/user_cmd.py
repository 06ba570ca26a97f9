"""User management CLI commands."""

import asyncio

import typer

user_app = typer.Typer()


@user_app.command("create")
def create_user(
    username: str = typer.Option(..., prompt=True, help="Username"),
    email: str = typer.Option(..., prompt=True, help="Email address"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password"),
    role: str = typer.Option("Member", prompt=True, help="Role name (Super Admin/Admin/Moderator/Member)"),
    display_name: str | None = typer.Option(None, "--display-name", help="Display name (default: username)"),
    if_not_exists: bool = typer.Option(
        False,
        "--if-not-exists",
        help="Exit successfully if user already exists (idempotent mode)",
    ),
) -> None:
    """Create a new user interactively."""
    asyncio.run(_create_user(username, email, password, role, display_name, if_not_exists=if_not_exists))


async def _create_user(
    username: str,
    email: str,
    password: str,
    role: str,
    display_name: str | None = None,
    *,
    if_not_exists: bool = False,
) -> None:
    """Async implementation of user creation."""
    from foxshrine_api.core.config import get_settings
    from foxshrine_api.core.database import dispose_engine, get_session_factory, init_engine
    from foxshrine_api.core.errors import ConflictError, ValidationError
    from foxshrine_api.services.auth_service import create_user

    settings = get_settings()
    init_engine(settings.sqlalchemy_url, pool_size=settings.db_pool_size)

    try:
        factory = get_session_factory()
        async with factory() as session:
            user = await create_user(
                session,
                username=username,
                email=email,
                password=password,
                role_name=role,
                display_name=display_name,
            )
            await session.commit()
            typer.echo(f"User '{user.username}' created with role '{user.role_name}'")
    except ConflictError as e:
        if if_not_exists:
            typer.echo(f"User '{username}' already exists, skipping (--if-not-exists)")
            return
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()


@user_app.command("list")
def list_users(
    role: str | None = typer.Option(None, "--role", help="Only users holding this role"),
    limit: int = typer.Option(100, "--limit", help="Maximum number of users to show"),
) -> None:
    """List users, newest first."""
    asyncio.run(_list_users(role, limit))


async def _list_users(role: str | None, limit: int) -> None:
    """Async implementation of user listing."""
    from foxshrine_api.core.config import get_settings
    from foxshrine_api.core.database import dispose_engine, get_session_factory, init_engine
    from foxshrine_api.services.auth_service import list_users

    settings = get_settings()
    init_engine(settings.sqlalchemy_url, pool_size=settings.db_pool_size)

    try:
        factory = get_session_factory()
        async with factory() as session:
            users, pagination = await list_users(session, page=1, limit=limit, role=role)
            typer.echo(f"{'Username':<20} {'Email':<30} {'Role':<12} {'Active':<8}")
            typer.echo("-" * 72)
            for user in users:
                typer.echo(f"{user.username:<20} {user.email:<30} {user.role_name:<12} {user.is_active!s:<8}")
            typer.echo(f"\nTotal: {pagination.total}")
    finally:
        await dispose_engine()


@user_app.command("hash-password")
def hash_password_cmd(
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Password to hash"),
) -> None:
    """Print a bcrypt hash for a password and verify it round-trips."""
    from foxshrine_api.core.security import hash_password, verify_password

    hashed = hash_password(password)
    typer.echo(f"Hash: {hashed}")
    typer.echo(f"Hash validation: {verify_password(password, hashed)}")
