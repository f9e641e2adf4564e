from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config

def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + (expires_delta or timedelta(minutes=config.JWT_EXPIRES_MINUTES))
    payload = {"sub": subject, "exp": expire, "iat": issued_at}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": ["exp", "sub"]},
    )


def verify_access_token(token: str) -> str:
    """Return the user id carried by ``token``.

    Raises ``jwt.InvalidTokenError`` for malformed, tampered, expired or
    subject-less tokens alike.
    """
    subject = decode_access_token(token).get("sub")
    if not subject:
        raise jwt.InvalidTokenError("Token has no subject")
    return subject
