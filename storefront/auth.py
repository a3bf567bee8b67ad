"""
Password hashing, JWT issuing/parsing and the bearer/role guards used by routes.
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Header, HTTPException

from storefront.config import get_settings
from storefront.db import STAFF_ROLES

ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=30)
SHORT_REFRESH_TOKEN_TTL = timedelta(days=7)
ALGORITHM = "HS256"


@dataclass
class Principal:
    user_id: int
    roles: list[str] = field(default_factory=list)

    def has_any_role(self, *roles: str) -> bool:
        return any(role in self.roles for role in roles)


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes.
    return bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:72], password_hash.encode("utf-8")
        )
    except ValueError:
        return False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_token(
    secret: str,
    user_id: int,
    roles: list[str],
    ttl: timedelta,
    token_type: str = "access",
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "roles": roles,
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode_token(secret: str, token: str, token_type: str = "access") -> Principal:
    """Validate a token and return its principal. Raises jwt.InvalidTokenError."""
    claims = jwt.decode(
        token, secret, algorithms=[ALGORITHM], options={"require": ["exp", "sub"]}
    )
    if claims.get("type") != token_type:
        raise jwt.InvalidTokenError(f"expected a {token_type} token")
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise jwt.InvalidTokenError("malformed subject") from exc
    return Principal(user_id=user_id, roles=list(claims.get("roles") or []))


def issue_access_token(user_id: int, roles: list[str]) -> str:
    return issue_token(get_settings().jwt_secret, user_id, roles, ACCESS_TOKEN_TTL)


def issue_refresh_token(
    user_id: int, roles: list[str], ttl: timedelta = REFRESH_TOKEN_TTL
) -> str:
    return issue_token(
        get_settings().refresh_secret, user_id, roles, ttl, token_type="refresh"
    )


def get_current_user(
    authorization: Optional[str] = Header(default=None),
) -> Principal:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    token = authorization[len("Bearer "):].strip()
    try:
        return decode_token(get_settings().jwt_secret, token)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="invalid token")


def require_roles(*roles: str):
    """Build a dependency that admits only principals holding one of `roles`."""

    def dependency(user: Principal = Depends(get_current_user)) -> Principal:
        if not user.has_any_role(*roles):
            raise HTTPException(status_code=403, detail="forbidden")
        return user

    return dependency


require_staff = require_roles(*STAFF_ROLES)
require_user_admin = require_roles("SuperAdmin", "Admin")
