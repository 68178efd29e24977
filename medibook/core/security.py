"""Access-token handling. Tokens are issued by the auth service; this API only verifies them."""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from medibook.core.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    lifetime = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    claims = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "exp": datetime.now(UTC) + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> int | None:
    """User id carried by a valid access token, else None."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
