"""Unit tests for the auth dependencies: bearer user, admin flag, funding API key."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from config.settings import settings
from src.p2p_common.errors import AccountDisabledError, ForbiddenError, InvalidApiKeyError
from src.p2p_gateway.auth.dependencies import (
    get_current_user,
    require_admin,
    require_funding_api_key,
)
from src.p2p_gateway.auth.jwt_handler import create_access_token


def _db_returning(user: object) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    return db


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentUser:
    async def test_returns_active_user(self) -> None:
        user = SimpleNamespace(id=3, is_active=True, is_admin=False)

        result = await get_current_user(_bearer(create_access_token(3)), _db_returning(user))

        assert result is user

    async def test_missing_credentials(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None, _db_returning(None))
        assert exc_info.value.status_code == 401

    async def test_invalid_token(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_bearer("garbage"), _db_returning(None))
        assert exc_info.value.status_code == 401

    async def test_unknown_user(self) -> None:
        with pytest.raises(HTTPException):
            await get_current_user(_bearer(create_access_token(3)), _db_returning(None))

    async def test_disabled_user(self) -> None:
        user = SimpleNamespace(id=3, is_active=False, is_admin=False)
        with pytest.raises(AccountDisabledError):
            await get_current_user(_bearer(create_access_token(3)), _db_returning(user))


class TestRequireAdmin:
    async def test_admin_passes(self) -> None:
        admin = SimpleNamespace(id=1, is_admin=True)
        assert await require_admin(admin) is admin

    async def test_non_admin_forbidden(self) -> None:
        with pytest.raises(ForbiddenError):
            await require_admin(SimpleNamespace(id=2, is_admin=False))


class TestFundingApiKey:
    async def test_matching_key(self) -> None:
        await require_funding_api_key(settings.FUNDING_API_KEY)

    @pytest.mark.parametrize("key", [None, "", "wrong-key"])
    async def test_bad_key(self, key: str | None) -> None:
        with pytest.raises(InvalidApiKeyError):
            await require_funding_api_key(key)

    async def test_empty_configured_key_disables_endpoint(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "FUNDING_API_KEY", "")
        with pytest.raises(InvalidApiKeyError):
            await require_funding_api_key("")
