"""JWT access-token verification.

Tokens are issued by the external identity provider and carry the internal
numeric user id in `sub`. This service only verifies them; `create_access_token`
exists for local development and tests.

MVP NOTE: HS256 with a shared JWT_SECRET. Upgrade to RS256 once the identity
provider publishes a public key.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.p2p_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: int) -> str:
    """Issue an access token for `user_id` (dev/test helper)."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> int:
    """Validate an access token and return the numeric user id it names.

    Raises:
        InvalidCredentialsError: signature/expiry invalid, wrong token type,
            or a `sub` claim that is not a positive integer.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type", "access") != "access":
        raise InvalidCredentialsError()

    try:
        user_id = int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise InvalidCredentialsError() from None
    if user_id <= 0:
        raise InvalidCredentialsError()
    return user_id
