"""Tests for the authentication service: registration, lockout, refresh and roles."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from foxshrine_api.core.errors import AuthError, ConflictError, InternalError, LockedError, NotFoundError, ValidationError
from foxshrine_api.core.security import decode_token, issue_token_pair
from foxshrine_api.models.activity_log import ActivityLog
from foxshrine_api.models.base import utcnow
from foxshrine_api.models.role import Role
from foxshrine_api.models.user_session import UserSession
from foxshrine_api.schemas.auth import AuthenticatedUser, RegisterRequest
from foxshrine_api.services import audit_service, auth_service, session_service
from foxshrine_api.services.audit_service import RequestContext

CONTEXT = RequestContext(ip_address="198.51.100.4", user_agent="pytest-agent")


async def _actions(session) -> list[str]:
    result = await session.execute(select(ActivityLog.action).order_by(ActivityLog.id))
    return list(result.scalars().all())


def _actor(user) -> AuthenticatedUser:
    return AuthenticatedUser.from_user(user)


class TestRegister:
    async def test_registers_member_with_session(self, async_session, roles, settings) -> None:
        request = RegisterRequest(username="newfox", email="newfox@example.com", password="longenough1")
        profile, tokens = await auth_service.register_user(async_session, request, settings, CONTEXT)

        assert profile.username == "newfox"
        assert profile.display_name == "newfox"
        assert profile.role == "Member"
        assert profile.permissions == ["config.read"]
        assert decode_token(tokens.access_token, settings.jwt_secret_key)["sub"] == str(profile.id)

        result = await async_session.execute(select(UserSession))
        user_session = result.scalar_one()
        assert user_session.refresh_token == tokens.refresh_token
        assert user_session.ip_address == "198.51.100.4"
        assert await _actions(async_session) == [audit_service.USER_REGISTERED]

    async def test_duplicate_username_conflicts(self, async_session, member_user, settings) -> None:
        request = RegisterRequest(username="foxfan", email="other@example.com", password="longenough1")
        with pytest.raises(ConflictError, match="Username or email already exists"):
            await auth_service.register_user(async_session, request, settings)

    async def test_duplicate_email_conflicts(self, async_session, member_user, settings) -> None:
        request = RegisterRequest(username="otherfox", email="foxfan@example.com", password="longenough1")
        with pytest.raises(ConflictError):
            await auth_service.register_user(async_session, request, settings)

    async def test_missing_default_role_is_internal(self, async_session, settings) -> None:
        request = RegisterRequest(username="lonefox", email="lone@example.com", password="longenough1")
        with pytest.raises(InternalError, match="Registration failed"):
            await auth_service.register_user(async_session, request, settings)


class TestCreateUser:
    async def test_unknown_role(self, async_session, roles) -> None:
        with pytest.raises(ValidationError, match="Role 'Overlord' does not exist"):
            await auth_service.create_user(
                async_session, username="x1", email="x1@example.com", password="longenough1", role_name="Overlord"
            )

    async def test_password_is_hashed(self, async_session, roles) -> None:
        user = await auth_service.create_user(
            async_session, username="hashfox", email="hash@example.com", password="longenough1"
        )
        assert user.password_hash != "longenough1"
        assert user.password_hash.startswith("$2b$")


class TestLogin:
    async def test_login_by_username(self, async_session, member_user, settings) -> None:
        profile, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings, CONTEXT)
        assert profile.id == member_user.id
        assert tokens.access_token != tokens.refresh_token
        assert member_user.last_login_at is not None
        assert await _actions(async_session) == [audit_service.LOGIN_SUCCESS]

    async def test_login_by_email(self, async_session, member_user, settings) -> None:
        profile, _ = await auth_service.login(async_session, "foxfan@example.com", "testpassword123", settings)
        assert profile.username == "foxfan"

    async def test_unknown_user(self, async_session, roles, settings) -> None:
        with pytest.raises(AuthError, match="Invalid credentials"):
            await auth_service.login(async_session, "ghost", "testpassword123", settings)
        assert await _actions(async_session) == []

    async def test_inactive_user_cannot_login(self, async_session, make_user, settings) -> None:
        await make_user("retired", is_active=False)
        with pytest.raises(AuthError):
            await auth_service.login(async_session, "retired", "testpassword123", settings)

    async def test_wrong_password_counts_attempts(self, async_session, member_user, settings) -> None:
        with pytest.raises(AuthError):
            await auth_service.login(async_session, "foxfan", "wrong", settings)
        assert member_user.login_attempts == 1
        assert member_user.locked_until is None

        result = await async_session.execute(select(ActivityLog))
        entry = result.scalar_one()
        assert entry.action == audit_service.LOGIN_FAILED
        assert entry.details == "Failed login attempt 1"

    async def test_fifth_failure_locks_account(self, async_session, member_user, settings) -> None:
        for _ in range(auth_service.MAX_FAILED_LOGINS):
            with pytest.raises(AuthError):
                await auth_service.login(async_session, "foxfan", "wrong", settings)
        assert member_user.login_attempts == 5
        assert member_user.locked_until is not None

        with pytest.raises(LockedError) as exc_info:
            await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        assert exc_info.value.status_code == 423

    async def test_locked_account_rejects_before_password_check(self, async_session, make_user, settings) -> None:
        await make_user("lockedfox", login_attempts=5, locked_until=utcnow() + timedelta(minutes=10))
        with pytest.raises(LockedError):
            await auth_service.login(async_session, "lockedfox", "wrong", settings)
        assert await _actions(async_session) == []

    async def test_expired_lock_allows_login_and_resets(self, async_session, make_user, settings) -> None:
        user = await make_user("freedfox", login_attempts=5, locked_until=utcnow() - timedelta(minutes=1))
        await auth_service.login(async_session, "freedfox", "testpassword123", settings)
        assert user.login_attempts == 0
        assert user.locked_until is None

    async def test_success_resets_counter(self, async_session, make_user, settings) -> None:
        user = await make_user("shakyfox", login_attempts=3)
        await auth_service.login(async_session, "shakyfox", "testpassword123", settings)
        assert user.login_attempts == 0


class TestRefresh:
    async def test_rotation(self, async_session, member_user, settings) -> None:
        _, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        rotated = await auth_service.refresh_tokens(async_session, tokens.refresh_token, settings)
        assert rotated.refresh_token != tokens.refresh_token

        result = await async_session.execute(select(UserSession).execution_options(populate_existing=True))
        user_session = result.scalar_one()
        assert user_session.refresh_token == rotated.refresh_token
        assert user_session.session_token == rotated.access_token
        assert user_session.version == 2

    async def test_old_refresh_token_is_rejected_after_rotation(self, async_session, member_user, settings) -> None:
        _, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        await auth_service.refresh_tokens(async_session, tokens.refresh_token, settings)
        with pytest.raises(AuthError, match="Refresh session not found or expired"):
            await auth_service.refresh_tokens(async_session, tokens.refresh_token, settings)

    async def test_concurrent_refresh_has_one_winner(self, async_session, member_user, settings) -> None:
        _, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        row = await session_service.find_refreshable_session(async_session, tokens.refresh_token)
        seen = SimpleNamespace(id=row.id, user_id=row.user_id, refresh_token=row.refresh_token, version=row.version)

        winner = await auth_service.refresh_tokens(async_session, tokens.refresh_token, settings)
        with (
            patch("foxshrine_api.services.session_service.find_refreshable_session", AsyncMock(return_value=seen)),
            pytest.raises(AuthError, match="Refresh session not found or expired"),
        ):
            await auth_service.refresh_tokens(async_session, tokens.refresh_token, settings)

        result = await async_session.execute(select(UserSession).execution_options(populate_existing=True))
        user_session = result.scalar_one()
        assert user_session.version == 2
        assert user_session.refresh_token == winner.refresh_token

    async def test_rotate_with_stale_version_is_rejected(self, async_session, member_user, settings) -> None:
        _, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        row = await session_service.find_refreshable_session(async_session, tokens.refresh_token)
        first = SimpleNamespace(id=row.id, refresh_token=row.refresh_token, version=row.version)
        second = SimpleNamespace(id=row.id, refresh_token=row.refresh_token, version=row.version)

        assert await session_service.rotate_session(
            async_session, first, issue_token_pair(member_user.id, settings), settings
        )
        assert not await session_service.rotate_session(
            async_session, second, issue_token_pair(member_user.id, settings), settings
        )

    async def test_access_token_is_wrong_type(self, async_session, member_user, settings) -> None:
        _, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        with pytest.raises(ValidationError, match="Invalid token type"):
            await auth_service.refresh_tokens(async_session, tokens.access_token, settings)

    async def test_garbage_token(self, async_session, settings) -> None:
        with pytest.raises(AuthError, match="Invalid refresh token"):
            await auth_service.refresh_tokens(async_session, "garbage", settings)

    async def test_logged_out_session_cannot_refresh(self, async_session, member_user, settings) -> None:
        profile, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        await auth_service.logout(async_session, tokens.access_token, profile)
        with pytest.raises(AuthError):
            await auth_service.refresh_tokens(async_session, tokens.refresh_token, settings)


class TestLogout:
    async def test_deactivates_session_and_audits(self, async_session, member_user, settings) -> None:
        profile, tokens = await auth_service.login(async_session, "foxfan", "testpassword123", settings)
        await auth_service.logout(async_session, tokens.access_token, profile, CONTEXT)

        result = await async_session.execute(select(UserSession).execution_options(populate_existing=True))
        assert result.scalar_one().is_active is False
        assert await _actions(async_session) == [audit_service.LOGIN_SUCCESS, audit_service.LOGOUT]


class TestUserAdministration:
    async def test_list_users_paginates_newest_first(self, async_session, make_user) -> None:
        base = utcnow()
        for offset, name in enumerate(["alpha", "bravo", "charlie"]):
            await make_user(name, created_at=base + timedelta(seconds=offset))

        users, meta = await auth_service.list_users(async_session, page=1, limit=2)
        assert [user.username for user in users] == ["charlie", "bravo"]
        assert meta.model_dump() == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    async def test_list_users_filters(self, async_session, make_user) -> None:
        await make_user("kitsune", "Moderator")
        await make_user("tanuki", "Member", display_name="Raccoon Dog")

        users, meta = await auth_service.list_users(async_session, role="Moderator")
        assert [user.username for user in users] == ["kitsune"]
        assert meta.total == 1

        users, _ = await auth_service.list_users(async_session, search="RACCOON")
        assert [user.username for user in users] == ["tanuki"]

    async def test_empty_listing(self, async_session, roles) -> None:
        users, meta = await auth_service.list_users(async_session)
        assert users == []
        assert meta.pages == 0

    async def test_update_role(self, async_session, admin_user, member_user) -> None:
        response = await auth_service.update_user_role(
            async_session, member_user.id, "Moderator", _actor(admin_user), CONTEXT
        )
        assert response.role_name == "Moderator"

        logs = await audit_service.list_system_activity(async_session)
        assert logs[0].action == audit_service.USER_ROLE_UPDATED
        assert logs[0].details == "Changed role of foxfan from Member to Moderator"

    async def test_update_role_unknown_user(self, async_session, admin_user) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            await auth_service.update_user_role(async_session, 9999, "Moderator", _actor(admin_user))

    async def test_update_role_unknown_role(self, async_session, admin_user, member_user) -> None:
        with pytest.raises(ValidationError):
            await auth_service.update_user_role(async_session, member_user.id, "Overlord", _actor(admin_user))

    async def test_list_roles(self, async_session, roles) -> None:
        listed = await auth_service.list_roles(async_session)
        by_name = {role.name: role for role in listed}
        assert set(by_name) == {"Super Admin", "Admin", "Moderator", "Member"}
        assert set(by_name["Moderator"].permissions) == {"config.read", "config.write", "users.read", "logs.read"}

    async def test_role_lookup(self, async_session, roles) -> None:
        role = await auth_service.get_role_by_name(async_session, "Admin")
        assert isinstance(role, Role)
        assert await auth_service.get_role_by_name(async_session, "Nobody") is None
