"""Verification of the access tokens issued by the auth service.

Only the user id (``sub``) is read. Tokens are HS256 JWTs signed with
``SECRET_KEY``; ``create_access_token`` mints the same format for tests and
local tooling.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel

from biolink.core.config import get_settings

settings = get_settings()

ALGORITHM = "HS256"
DEFAULT_TOKEN_LIFETIME = timedelta(days=7)


class TokenData(BaseModel):
    """Claims this service relies on."""

    user_id: UUID
    expires_at: datetime


def create_access_token(user_id: UUID, lifetime: timedelta = DEFAULT_TOKEN_LIFETIME) -> str:
    """Sign a token for ``user_id``."""
    claims = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenData | None:
    """Return the token's claims, or None if it is malformed, forged or expired."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None

    subject, expiry = claims.get("sub"), claims.get("exp")
    if subject is None or expiry is None:
        return None

    try:
        user_id = UUID(subject)
    except ValueError:
        return None

    return TokenData(
        user_id=user_id,
        expires_at=datetime.fromtimestamp(expiry, tz=timezone.utc),
    )
