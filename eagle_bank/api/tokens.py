"""
JWT access tokens

Tokens carry the user's email as the subject. The core only ever sees the
email recovered from a verified token.
"""

from datetime import datetime, timezone, timedelta

import jwt

from ..config import get_config


def create_access_token(email: str) -> str:
    """Issue a signed access token for an authenticated user"""
    config = get_config()
    now = datetime.now(timezone.utc)
    token_payload = {
        "sub": email,
        "iat": now,
        "exp": now + timedelta(minutes=config.jwt_expiry_minutes)
    }
    return jwt.encode(token_payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """
    Verify a token and return its subject email

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is malformed, badly signed or has no subject
    """
    config = get_config()
    payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
    email = payload.get("sub")
    if not email:
        raise jwt.InvalidTokenError("Token has no subject")
    return email
