"""
Password hashing and signed access tokens.

Passwords are stored as ``pbkdf2_sha256$<rounds>$<salt>$<hex digest>`` so
the work factor can be raised without invalidating existing hashes.

Access tokens are compact HS256 JWTs carrying the user id (``sub``), the
username and the role name. The role's capability flags are not embedded;
they are loaded from the database on every request so permission changes
apply immediately.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .config import get_app_env


PASSWORD_SCHEME = "pbkdf2_sha256"
DEFAULT_HASH_ROUNDS = 120000
DEFAULT_TOKEN_TTL_MIN = 1440
DEV_JWT_SECRET = "dishub-dev-secret-change-me"
TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenError(ValueError):
    """Raised when an access token cannot be trusted."""


def _hash_rounds() -> int:
    raw = os.getenv("DISHUB_PASSWORD_HASH_ROUNDS")
    try:
        return max(1, int(raw)) if raw else DEFAULT_HASH_ROUNDS
    except ValueError:
        return DEFAULT_HASH_ROUNDS


def _pbkdf2(password: str, salt: str, rounds: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), rounds).hex()


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    rounds = _hash_rounds()
    salt = secrets.token_hex(16)
    return "$".join((PASSWORD_SCHEME, str(rounds), salt, _pbkdf2(password, salt, rounds)))


def verify_password(password: str, encoded: Optional[str]) -> bool:
    parts = (encoded or "").split("$")
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME or not parts[1].isdigit():
        return False
    _, rounds, salt, expected = parts
    return secrets.compare_digest(_pbkdf2(password, salt, int(rounds)), expected)


def _signing_key() -> bytes:
    secret = (os.getenv("DISHUB_JWT_SECRET") or "").strip()
    if not secret:
        if get_app_env() == "prod":
            raise RuntimeError("DISHUB_JWT_SECRET is required in prod")
        secret = DEV_JWT_SECRET
    return secret.encode("utf-8")


def _token_ttl() -> timedelta:
    raw = os.getenv("DISHUB_JWT_EXP_MIN")
    try:
        minutes = max(1, int(raw)) if raw else DEFAULT_TOKEN_TTL_MIN
    except ValueError:
        minutes = DEFAULT_TOKEN_TTL_MIN
    return timedelta(minutes=minutes)


def _encode_segment(data: dict[str, Any]) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_segment(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _signature(signing_input: str, key: bytes) -> bytes:
    return hmac.new(key, signing_input.encode("ascii"), hashlib.sha256).digest()


def create_access_token(*, sub: str, username: str, role: str) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": sub,
        "username": username,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + _token_ttl()).timestamp()),
    }
    signing_input = f"{_encode_segment(TOKEN_HEADER)}.{_encode_segment(claims)}"
    signature = base64.urlsafe_b64encode(_signature(signing_input, _signing_key())).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; return the claims.

    Any decoding problem surfaces as ``TokenError`` (a ``ValueError``).
    """
    try:
        header_b64, claims_b64, signature_b64 = token.split(".")
    except ValueError:
        raise TokenError("Malformed token")
    signing_input = f"{header_b64}.{claims_b64}"
    try:
        header = json.loads(_decode_segment(header_b64))
        provided = _decode_segment(signature_b64)
        claims = json.loads(_decode_segment(claims_b64))
    except ValueError as exc:
        raise TokenError(f"Undecodable token: {exc}") from exc
    if not isinstance(header, dict) or header.get("alg") != TOKEN_HEADER["alg"]:
        raise TokenError("Unsupported token algorithm")
    if not hmac.compare_digest(_signature(signing_input, _signing_key()), provided):
        raise TokenError("Invalid signature")
    if not isinstance(claims, dict):
        raise TokenError("Invalid claims")
    expires_at = claims.get("exp")
    if not isinstance(expires_at, int) or expires_at <= int(datetime.now(timezone.utc).timestamp()):
        raise TokenError("Token expired")
    return claims
