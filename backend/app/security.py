"""
Caisse Backend — Password Hashing & Session Tokens
====================================================

What:  bcrypt password hashes and PyJWT session tokens.
How:   Hashing runs in Starlette's threadpool so a slow hash does not stall
       other requests. Tokens are HS256, signed with JWT_SECRET, and carry
       the caller's identity and tenancy for TOKEN_TTL_HOURS.
Who:   Used by the auth and user services and the `require_user` dependency.

Token claims:
    id, email, role, company, agencies, iat, exp

Failure masking:
    Expired, tampered and malformed tokens all raise
    AuthenticationError("Unauthorized"); no PyJWT exception escapes.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from pydantic import ValidationError as SchemaError
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.exceptions import AuthenticationError, ValidationError
from app.schemas.auth import SessionUser


# ══════════════════════════════════════════════════════════════════════════
# Password Hashing
# ══════════════════════════════════════════════════════════════════════════

def _hashpw(password: str, rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _checkpw(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash, or a password bcrypt refuses (> 72 bytes)
        return False


async def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt at the configured cost factor.

    Raises:
        ValidationError: bcrypt rejected the password (longer than 72 bytes)
    """
    try:
        return await run_in_threadpool(_hashpw, password, settings.bcrypt_rounds)
    except ValueError as exc:
        raise ValidationError("Password is too long", field="password") from exc


async def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """True when `password` matches the stored hash. Never raises."""
    return await run_in_threadpool(_checkpw, password, password_hash or "")


_dummy_hash: Optional[str] = None


async def dummy_password_hash() -> str:
    """
    A throwaway hash at the configured cost, created on first use.

    Login checks unknown emails against it so that they take as long as a
    wrong password.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = await hash_password(secrets.token_urlsafe(16))
    return _dummy_hash


# ══════════════════════════════════════════════════════════════════════════
# Session Tokens
# ══════════════════════════════════════════════════════════════════════════

def create_token(user: SessionUser, now: Optional[datetime] = None) -> str:
    """Sign a session token for `user`, valid for TOKEN_TTL_HOURS from `now`."""
    issued = now or datetime.now(timezone.utc)
    claims = user.model_dump()
    claims["iat"] = int(issued.timestamp())
    claims["exp"] = int((issued + timedelta(hours=settings.token_ttl_hours)).timestamp())
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> SessionUser:
    """
    Verify a session token and return the identity it carries.

    Raises:
        AuthenticationError: expired, tampered, unsigned or incomplete token
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError(context={"reason": type(exc).__name__}) from exc

    try:
        return SessionUser.model_validate(claims)
    except SchemaError as exc:
        raise AuthenticationError(context={"reason": "invalid_claims"}) from exc


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an `Authorization: Bearer <token>` header value."""
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None
