"""
Tests for the session core against a real (SQLite) user store.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import auth.service as auth_service
from auth.errors import ConflictError, NotFoundError, UnauthorizedError
from auth.models import LoginRequest, SignupRequest
from auth.password import hash_password
from auth.service import SessionService
from database.helpers import DuplicateEmail, UserStore
from database.models import User


def _signup(email="a@x.com", password="pw", name="A") -> SignupRequest:
    return SignupRequest(name=name, email=email, password=password)


class TestSignup:
    @pytest.mark.asyncio
    async def test_fresh_email(self, service):
        user = await service.signup(_signup())
        assert user.email == "a@x.com"
        assert user.name == "A"
        assert "password" not in user.model_dump()
        uuid.UUID(user.id)

    @pytest.mark.asyncio
    async def test_password_is_hashed_and_refresh_empty(self, service, db_session):
        user = await service.signup(_signup())
        row = await db_session.get(User, uuid.UUID(user.id))
        assert row.password != "pw"
        assert row.password.startswith("$2b$")
        assert row.refresh_token is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["pw", "something-else"])
    async def test_duplicate_email_conflicts(self, service, password):
        await service.signup(_signup())
        with pytest.raises(ConflictError) as exc_info:
            await service.signup(_signup(password=password))
        assert exc_info.value.message == "User already exists"

    @pytest.mark.asyncio
    async def test_email_is_case_insensitive(self, service):
        await service.signup(_signup(email="Mixed@X.com"))
        with pytest.raises(ConflictError):
            await service.signup(_signup(email="mixed@x.COM"))

    @pytest.mark.asyncio
    async def test_unique_constraint_race_maps_to_conflict(self, issuer):
        store = MagicMock()
        store.get_by_email = AsyncMock(return_value=None)
        store.create = AsyncMock(side_effect=DuplicateEmail("a@x.com"))
        service = SessionService(store, issuer, bcrypt_rounds=4)

        with pytest.raises(ConflictError):
            await service.signup(_signup())


class TestUserStore:
    @pytest.mark.asyncio
    async def test_unique_constraint_enforced(self, db_session):
        store = UserStore(db_session)
        await store.create("A", "a@x.com", "hash")
        with pytest.raises(DuplicateEmail):
            await store.create("B", "A@x.com", "hash")

    @pytest.mark.asyncio
    async def test_get_by_id_with_garbage_id(self, db_session):
        assert await UserStore(db_session).get_by_id("not-a-uuid") is None


class TestLogin:
    @pytest.mark.asyncio
    async def test_returns_both_tokens(self, service, issuer):
        created = await service.signup(_signup())
        result = await service.login(LoginRequest(email="a@x.com", password="pw"))

        assert result.user == created
        assert issuer.verify_access(result.access_token) == created.id
        assert issuer.verify_refresh(result.refresh_token) == created.id

    @pytest.mark.asyncio
    async def test_stores_refresh_token(self, service, db_session):
        created = await service.signup(_signup())
        result = await service.login(LoginRequest(email="a@x.com", password="pw"))
        row = await db_session.get(User, uuid.UUID(created.id))
        assert row.refresh_token == result.refresh_token

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(self, service):
        await service.signup(_signup())

        with pytest.raises(UnauthorizedError) as wrong_pw:
            await service.login(LoginRequest(email="a@x.com", password="wrong"))
        with pytest.raises(UnauthorizedError) as unknown:
            await service.login(LoginRequest(email="nobody@x.com", password="pw"))

        assert wrong_pw.value.message == unknown.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_with_different_case(self, service):
        await service.signup(_signup(email="a@x.com"))
        result = await service.login(LoginRequest(email="A@X.com", password="pw"))
        assert result.user.email == "a@x.com"

    @pytest.mark.asyncio
    async def test_second_login_invalidates_first_refresh_token(self, service):
        created = await service.signup(_signup())
        first = await service.login(LoginRequest(email="a@x.com", password="pw"))
        second = await service.login(LoginRequest(email="a@x.com", password="pw"))

        assert first.refresh_token != second.refresh_token
        assert await service.is_current_refresh_token(created.id, second.refresh_token)
        assert not await service.is_current_refresh_token(created.id, first.refresh_token)

        with pytest.raises(UnauthorizedError):
            await service.refresh(first.refresh_token)


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_found(self, service):
        created = await service.signup(_signup())
        assert await service.current_user(created.id) == created

    @pytest.mark.asyncio
    async def test_deleted_subject(self, service, db_session):
        created = await service.signup(_signup())
        row = await db_session.get(User, uuid.UUID(created.id))
        await db_session.delete(row)
        await db_session.flush()

        with pytest.raises(NotFoundError):
            await service.current_user(created.id)


class TestRefreshAndLogout:
    @pytest.mark.asyncio
    async def test_refresh_rotates(self, service, issuer):
        created = await service.signup(_signup())
        login = await service.login(LoginRequest(email="a@x.com", password="pw"))

        pair = await service.refresh(login.refresh_token)

        assert issuer.verify_access(pair.access_token) == created.id
        assert await service.is_current_refresh_token(created.id, pair.refresh_token)
        with pytest.raises(UnauthorizedError):
            await service.refresh(login.refresh_token)

    @pytest.mark.asyncio
    async def test_refresh_rejects_access_token(self, service):
        await service.signup(_signup())
        login = await service.login(LoginRequest(email="a@x.com", password="pw"))
        with pytest.raises(UnauthorizedError):
            await service.refresh(login.access_token)

    @pytest.mark.asyncio
    async def test_logout_clears_refresh_token(self, service):
        created = await service.signup(_signup())
        login = await service.login(LoginRequest(email="a@x.com", password="pw"))

        await service.logout(created.id)

        assert not await service.is_current_refresh_token(created.id, login.refresh_token)
        with pytest.raises(UnauthorizedError):
            await service.refresh(login.refresh_token)


class TestRefreshRace:
    @pytest.mark.asyncio
    async def test_swap_only_succeeds_for_stored_token(self, db_session):
        store = UserStore(db_session)
        user = await store.create("A", "a@x.com", "hash")
        await store.set_refresh_token(user, "old")

        assert await store.swap_refresh_token(user, "old", "new-1")
        assert not await store.swap_refresh_token(user, "old", "new-2")
        assert user.refresh_token == "new-1"

    @pytest.mark.asyncio
    async def test_refresh_loses_to_concurrent_rotation(self, issuer):
        user = MagicMock()
        user.id = uuid.uuid4()
        token = issuer.issue_refresh(str(user.id))
        user.refresh_token = token

        store = MagicMock()
        store.get_by_id = AsyncMock(return_value=user)
        # another request rotated the token between the read and the write
        store.swap_refresh_token = AsyncMock(return_value=False)
        service = SessionService(store, issuer, bcrypt_rounds=4)

        with pytest.raises(UnauthorizedError):
            await service.refresh(token)
        store.swap_refresh_token.assert_awaited_once()


class TestUnknownEmailTiming:
    @pytest.mark.asyncio
    async def test_dummy_hash_computed_off_the_event_loop(self, service):
        auth_service._DUMMY_HASHES.clear()
        with patch("auth.service.hash_password_async", new_callable=AsyncMock) as mock_hash:
            mock_hash.return_value = hash_password("not-a-real-password", rounds=4)
            with pytest.raises(UnauthorizedError):
                await service.login(LoginRequest(email="nobody@x.com", password="pw"))
            with pytest.raises(UnauthorizedError):
                await service.login(LoginRequest(email="other@x.com", password="pw"))

        mock_hash.assert_awaited_once_with("not-a-real-password", 4)
        auth_service._DUMMY_HASHES.clear()
