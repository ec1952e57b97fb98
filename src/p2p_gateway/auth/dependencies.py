"""FastAPI dependencies: get_current_user, require_admin, require_funding_api_key.

Usage in any protected router:
    from src.p2p_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...
"""

import secrets

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.database import get_db_session
from src.p2p_common.errors import (
    AccountDisabledError,
    ForbiddenError,
    InvalidApiKeyError,
    InvalidCredentialsError,
)
from src.p2p_gateway.auth.jwt_handler import decode_token
from src.p2p_gateway.user.db_models import UserModel

# Tokens come from the identity provider, so there is no tokenUrl to advertise.
bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, expired, or names an
    unknown user. Raises AccountDisabledError (403) for disabled accounts.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        user_id = decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Arbitration and settings endpoints: caller must carry the admin flag."""
    if not current_user.is_admin:
        raise ForbiddenError("admin privileges required")
    return current_user


async def require_funding_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    """Authenticate the trusted funding system by shared API key.

    An empty FUNDING_API_KEY disables the funding endpoint entirely.
    """
    expected = settings.FUNDING_API_KEY
    if not expected or not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise InvalidApiKeyError()
