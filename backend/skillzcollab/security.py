from __future__ import annotations
import re
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any
import jwt
from passlib.context import CryptContext
from skillzcollab.config import get_auth_config, get_jwt_config
from skillzcollab.errors import Unauthorized

_DURATION = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}

@lru_cache(maxsize=4)
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

def pwd_context() -> CryptContext:
    return _pwd_context(get_auth_config().password.bcrypt_rounds)

def hash_password(password: str) -> str:
    return pwd_context().hash(password)

def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context().verify(password, password_hash)
    except ValueError:
        # malformed stored hash
        return False

def parse_duration(value: str | int) -> int:
    """'15m' -> 900, '24h' -> 86400, '7d' -> 604800; bare numbers are seconds."""
    if isinstance(value, int):
        return value
    m = _DURATION.match(value)
    if not m:
        raise ValueError(f"Invalid duration: {value!r}")
    return int(m.group(1)) * _UNIT_SECONDS[m.group(2)]

def _make_token(user, ttl_seconds: int, token_type: str, extra: dict[str, Any] | None = None) -> str:
    cfg = get_jwt_config()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "type": token_type,
        "role": user.role,
        "username": user.username,
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "iat": now.timestamp(),  # float, compared against last_logout_at
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        # unique per token, even when minted in the same second
        "jti": uuid.uuid4().hex,
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, cfg.signing_key, algorithm=cfg.algorithm)

def access_ttl_seconds() -> int:
    return parse_duration(get_jwt_config().access_token_validity)

def refresh_ttl_seconds() -> int:
    return parse_duration(get_jwt_config().refresh_token_validity)

def make_access_token(user) -> str:
    return _make_token(user, access_ttl_seconds(), "access", {"email": user.email})

def make_refresh_token(user) -> str:
    return _make_token(user, refresh_ttl_seconds(), "refresh")

def decode_token(token: str) -> dict[str, Any]:
    cfg = get_jwt_config()
    try:
        return jwt.decode(
            token,
            cfg.verification_key or cfg.signing_key,
            algorithms=[cfg.algorithm],
            audience=cfg.audience,
            issuer=cfg.issuer,
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token", code="INVALID_TOKEN")

def sign_state(claims: dict[str, Any], ttl_seconds: int = 600) -> str:
    """Short-lived signed blob used as the OAuth `state` parameter."""
    cfg = get_jwt_config()
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": "oauth_state",
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "nonce": uuid.uuid4().hex,
    }
    return jwt.encode(payload, cfg.signing_key, algorithm=cfg.algorithm)
