"""Security Primitives — bcrypt password hashing and PyJWT token handling.

Invariants:
    - Passwords are only ever stored as bcrypt hashes
    - Every token carries `sub` (user id), `purpose`, `iat`, `exp`
    - A token minted for one purpose never validates for another
      (an e-mail verification link cannot be used as an access token)
    - decode failures surface as AuthenticationError, never as jwt exceptions
"""

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from qoro.core.errors import AuthenticationError

PURPOSE_ACCESS = "access"
PURPOSE_VERIFY_EMAIL = "verify_email"
PURPOSE_RESET_PASSWORD = "reset_password"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_token(
    subject: str, purpose: str, secret: str, algorithm: str,
    expires_in: timedelta, extra: dict | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "purpose": purpose,
        "iat": now,
        "exp": now + expires_in,
        **(extra or {}),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
    token: str, purpose: str, secret: str, algorithm: str,
) -> dict:
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expirado.", "TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Token inválido.", "TOKEN_INVALID")
    if payload.get("purpose") != purpose or not payload.get("sub"):
        raise AuthenticationError("Token inválido.", "TOKEN_INVALID")
    return payload
