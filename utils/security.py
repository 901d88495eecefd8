"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token issuing/verification via PyJWT (HMAC family only)
- Opaque refresh token generation and sha-256 hashing
"""
from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError

from utils.exceptions import ConfigurationError, InfrastructureError, InvalidToken

ph = PasswordHasher()

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
REFRESH_TOKEN_BYTES = 32


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    try:
        return ph.hash(password)
    except HashingError as exc:
        raise InfrastructureError("failed to hash password") from exc


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password using argon2.

    Returns False on mismatch; any other failure is an infrastructure fault.
    """
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError) as exc:
        raise InfrastructureError("failed to verify password") from exc


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Argon2 hash of a random secret, checked when the username is unknown."""
    return hash_password(secrets.token_urlsafe(16))


def generate_refresh_token() -> tuple[str, str]:
    """Return (raw_token, token_hash) for a new opaque refresh token."""
    raw = secrets.token_urlsafe(REFRESH_TOKEN_BYTES)
    return raw, hash_refresh_token(raw)


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class AccessTokenClaims:
    user_id: int
    username: str
    subject: str
    issued_at: datetime
    expires_at: datetime


class TokenSigner:
    """Issues and verifies short-lived access tokens."""

    def __init__(
        self,
        secret: str,
        ttl: timedelta,
        algorithm: str = "HS256",
        now: Callable[[], datetime] = utcnow,
    ):
        if not secret or not secret.strip():
            raise ConfigurationError("jwt secret is required")
        if ttl <= timedelta(0):
            raise ConfigurationError("access token ttl must be greater than zero")
        if algorithm not in HMAC_ALGORITHMS:
            raise ConfigurationError(f"unsupported signing algorithm: {algorithm}")
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl
        self._now = now

    def issue(self, user_id: int, username: str) -> str:
        now = self._now()
        payload = {
            "userId": user_id,
            "username": username,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise InfrastructureError("failed to sign access token") from exc

    def verify(self, token: str) -> AccessTokenClaims:
        """
        Decode and validate an access token. Any failure raises InvalidToken;
        the reason is never surfaced.
        Expiry is checked against the injected clock, not the wall clock.
        """
        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "iat", "sub"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError:
            raise InvalidToken()

        user_id = decoded.get("userId")
        username = decoded.get("username")
        exp = decoded.get("exp")
        iat = decoded.get("iat")
        if (
            not isinstance(user_id, int)
            or isinstance(user_id, bool)
            or user_id <= 0
            or not isinstance(username, str)
            or decoded.get("sub") != str(user_id)
            or not isinstance(exp, (int, float))
            or not isinstance(iat, (int, float))
        ):
            raise InvalidToken()
        if exp <= self._now().timestamp():
            raise InvalidToken()

        return AccessTokenClaims(
            user_id=user_id,
            username=username,
            subject=decoded["sub"],
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
