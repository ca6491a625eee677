"""Low-level auth helpers: password hashing + JWT encode/decode."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from passlib.context import CryptContext
from jose import JWTError, jwt

from poscore.config import settings

# ── Password hashing ────────────────────────────────────────────
_pwd_ctx = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_hash_rounds,
)


def hash_password(plain: str) -> str:
    return _pwd_ctx.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return _pwd_ctx.verify(plain, hashed)


# ── JWT ──────────────────────────────────────────────────────────
def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
    secret_key: Optional[str] = None,
) -> str:
    """
    Create a JWT containing arbitrary `data` plus `iat` and `exp`.

    Session tokens carry: sub, typ="session".
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.session_max_age_minutes)
    )
    to_encode["iat"] = now
    to_encode["exp"] = expire
    return jwt.encode(
        to_encode, secret_key or settings.secret_key, algorithm=settings.algorithm
    )


def decode_access_token(token: str, secret_key: Optional[str] = None) -> dict | None:
    """Decode and verify a JWT. Returns None when invalid or expired."""
    try:
        return jwt.decode(
            token, secret_key or settings.secret_key, algorithms=[settings.algorithm]
        )
    except JWTError:
        return None
