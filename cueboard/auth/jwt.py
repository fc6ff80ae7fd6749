from jose import jwt, JWTError
from cueboard.config import settings


def decode_access_token(token: str) -> dict | None:
    """Verify a Supabase-issued access token. Returns payload or None if invalid."""
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload
