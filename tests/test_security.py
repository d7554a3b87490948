from __future__ import annotations

import pytest
from jose import JWTError

from karigar.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)


def test_password_hash_roundtrip() -> None:
    hashed = get_password_hash("s3cret")
    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_claims() -> None:
    token = create_access_token("user-1", "merchant-1", roles=["admin"])
    payload = decode_token(token)
    assert payload["sub"] == "user-1"
    assert payload["merchant_id"] == "merchant-1"
    assert payload["roles"] == ["admin"]
    assert payload["type"] == "access"


def test_refresh_token_type() -> None:
    payload = decode_token(create_refresh_token("user-1", "merchant-1"))
    assert payload["type"] == "refresh"
    assert "roles" not in payload


def test_tampered_token_rejected() -> None:
    token = create_access_token("user-1", "merchant-1")
    with pytest.raises(JWTError):
        decode_token(token[:-2] + ("A" if token[-1] != "A" else "B") + token[-1])
