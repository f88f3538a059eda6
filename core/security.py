"""
Credential primitives consumed by the access-control gate.

- Password hashes from werkzeug.security (salted PBKDF2-SHA256)
- HS256 JSON Web Tokens from PyJWT, carrying the identity claims
  (user_id, username, email, role) and an ``exp`` claim

Anything malformed, forged or expired is rejected with AuthenticationError.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from core.errors import AuthenticationError

TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller resolved from a bearer token."""
    user_id: int
    username: str
    email: str
    role: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
        }


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str, iterations: int = 600_000) -> str:
    return generate_password_hash(password, method=f"pbkdf2:sha256:{iterations}")


def verify_password(password: str, stored: str) -> bool:
    """False for a wrong password or a stored hash werkzeug cannot parse."""
    try:
        return check_password_hash(stored, password)
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def issue_token(identity: Identity, secret: str, ttl_seconds: int) -> str:
    """Sign the identity claims with an expiry ``ttl_seconds`` from now."""
    claims = {
        **identity.to_dict(),
        "sub": str(identity.user_id),
        "exp": datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM)


def verify_token(token: str, secret: str) -> Identity:
    """Return the identity inside ``token`` or raise AuthenticationError."""
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[TOKEN_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
        return Identity(
            user_id=int(claims["user_id"]),
            username=claims["username"],
            email=claims["email"],
            role=claims["role"],
        )
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid or expired token")
