from datetime import timedelta

import pytest

from dishub_monitor.core.security import (
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_password_hash_roundtrip_and_rejects_garbage():
    encoded = hash_password("secret123")
    assert encoded.startswith("pbkdf2_sha256$1000$")
    assert verify_password("secret123", encoded)
    assert not verify_password("secret124", encoded)
    assert not verify_password("secret123", "plain-text")
    assert not verify_password("secret123", None)


def test_token_claims_and_tampering():
    token = create_access_token(sub="u-1", username="operator", role="Operator")
    claims = decode_access_token(token)
    assert (claims["sub"], claims["username"], claims["role"]) == ("u-1", "operator", "Operator")

    header, _, signature = token.split(".")
    other = create_access_token(sub="u-2", username="admin", role="Super Admin").split(".")[1]
    with pytest.raises(TokenError):
        decode_access_token(f"{header}.{other}.{signature}")
    with pytest.raises(TokenError):
        decode_access_token("not-a-token")


def test_expired_token_is_rejected(monkeypatch):
    token = create_access_token(sub="u-1", username="operator", role="Operator")
    monkeypatch.setattr("dishub_monitor.core.security._token_ttl", lambda: timedelta(minutes=-5))
    expired = create_access_token(sub="u-1", username="operator", role="Operator")
    assert decode_access_token(token)["sub"] == "u-1"
    with pytest.raises(TokenError):
        decode_access_token(expired)
