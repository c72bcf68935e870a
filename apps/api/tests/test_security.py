"""Tests for password hashing and session tokens."""
import uuid

import jwt
import pytest

from helpdesk.core.config import settings
from helpdesk.core.security import (
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)


def test_hash_uses_configured_rounds():
    hashed = hash_password("correct-horse")

    assert hashed.startswith(f"$pbkdf2-sha256${settings.PASSWORD_HASH_ITERATIONS}$")
    assert hashed != hash_password("correct-horse")


def test_verify_password():
    hashed = hash_password("correct-horse")

    assert verify_password("correct-horse", hashed) is True
    assert verify_password("battery-staple", hashed) is False


@pytest.mark.parametrize(
    "stored_hash",
    ["garbage", "$pbkdf2-sha256$notanint$x$y", "$pbkdf2-sha256$", ""],
)
def test_malformed_hash_never_verifies(stored_hash):
    assert verify_password("correct-horse", stored_hash) is False


def test_session_token_round_trip():
    user_id, org_id = uuid.uuid4(), uuid.uuid4()
    token = create_session_token(user_id, org_id, "agent", 0)

    payload = decode_session_token(token)

    assert payload["sub"] == str(user_id)
    assert payload["role"] == "agent"


def test_tampered_token_rejected():
    token = create_session_token(uuid.uuid4(), uuid.uuid4(), "admin", 0)

    header_and_claims, _ = token.rsplit(".", 1)

    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(f"{header_and_claims}.c2lnbmF0dXJl")
