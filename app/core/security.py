import secrets

from jose import JWTError, jwt

from app.core.config import settings
from app.core.errors import Unauthenticated


def decode_access_token(token: str) -> str:
    """Verify a Supabase access token and return its subject (the auth user id).

    Raises Unauthenticated on a bad signature, expiry, wrong audience or a
    missing ``sub`` claim.
    """
    options = {}
    audience = settings.supabase_jwt_audience or None
    if audience is None:
        options["verify_aud"] = False
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.algorithm],
            audience=audience,
            options=options,
        )
    except JWTError:
        raise Unauthenticated("Not authorized, token failed", error="invalid_token")

    subject = payload.get("sub")
    if not subject:
        raise Unauthenticated("Not authorized, token failed", error="invalid_token")
    return str(subject)


def verify_webhook_secret(provided: str | None) -> bool:
    """Constant-time check of the auth webhook's shared secret."""
    expected = settings.supabase_webhook_secret
    if not expected or not provided:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
