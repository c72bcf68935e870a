"""Security utilities for JWT session tokens and password hashing."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from passlib.context import CryptContext

from helpdesk.core.config import settings


# =============================================================================
# Session Token (JWT bearer)
# =============================================================================

def create_session_token(
    user_id: UUID,
    org_id: UUID | None,
    role: str,
    token_version: int,
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    Token contains user identity, org context, and revocation version.
    """
    payload = {
        "sub": str(user_id),
        "org_id": str(org_id) if org_id else None,
        "role": role,
        "token_version": token_version,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# Passwords (PBKDF2-SHA256 via passlib)
# =============================================================================

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__rounds=settings.PASSWORD_HASH_ITERATIONS,
)


def hash_password(password: str) -> str:
    """Hash a password in modular crypt format (``$pbkdf2-sha256$rounds$salt$digest``)."""
    return pwd_context.hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a password against a stored hash; a malformed hash never verifies."""
    try:
        return pwd_context.verify(password, stored_hash)
    except (ValueError, TypeError):
        return False
