from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any
import jwt
from listmod.config import settings

JWT_ALG = "HS256"

# Tokens are issued by the login service; this API only verifies them.
# make_access_token exists for tooling and tests.

def make_access_token(sub: str, ttl_min: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "type": "access",
        "iat": now.timestamp(),
        "exp": int((now + timedelta(minutes=ttl_min or settings.access_ttl_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)

def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])
