from jose import JWTError, jwt

from habitpush.config import settings


def decode_access_token(token: str) -> dict | None:
    """Verify a bearer token issued by the auth provider.

    Tokens are minted elsewhere; this service only checks the signature and
    expiry. The audience is not pinned because providers differ on it.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError:
        return None


def user_id_from_token(token: str) -> str | None:
    payload = decode_access_token(token)
    if payload is None:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None
