"""
Authentication core: credentials, access tokens and refresh-session rotation.

Refresh tokens are opaque, single-use and grouped into families. Every
successful refresh consumes the family's only active session and appends a
successor. Presenting any session that is no longer active (consumed,
revoked, replaced or expired) revokes the whole family and forces the
owner to log in again.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterator

from sqlalchemy.exc import SQLAlchemyError

from models.refresh_session import RefreshSession
from models.repositories import RefreshSessionRepository, UserRepository
from models.user import User
from utils.exceptions import (
    ConfigurationError,
    InfrastructureError,
    InvalidCredentials,
    InvalidToken,
    RefreshRejected,
    RejectReason,
    ValidationFailed,
)
from utils.security import (
    AccessTokenClaims,
    TokenSigner,
    dummy_password_hash,
    generate_refresh_token,
    hash_password,
    hash_refresh_token,
    utcnow,
    verify_password,
)

logger = logging.getLogger(__name__)

REUSE_REASON = "refresh token reuse or expired token"
LOGOUT_REASON = "user logout"


@dataclass(frozen=True)
class IssuedSession:
    raw_token: str
    session: RefreshSession


@dataclass(frozen=True)
class AuthResult:
    """What the HTTP layer needs to answer register/login/refresh."""

    access_token: str
    user: User
    refresh_token: str
    refresh_expires_at: datetime


@contextmanager
def _store_call(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure while %s", action)
        raise InfrastructureError() from exc


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        sessions: RefreshSessionRepository,
        signer: TokenSigner,
        refresh_ttl: timedelta,
        now: Callable[[], datetime] = utcnow,
    ):
        if refresh_ttl <= timedelta(0):
            raise ConfigurationError("refresh token ttl must be greater than zero")
        self._users = users
        self._sessions = sessions
        self._signer = signer
        self._refresh_ttl = refresh_ttl
        self._now = now

    # -- credentials -------------------------------------------------------

    def register(self, username: str, password: str) -> AuthResult:
        username = _require_credentials(username, password)
        password_hash = hash_password(password)
        with _store_call("creating user"):
            user = self._users.create(username, password_hash)
        return self._start_session(user)

    def login(self, username: str, password: str) -> AuthResult:
        username = _require_credentials(username, password)
        with _store_call("looking up user"):
            user = self._users.find_by_username(username)
        if user is None:
            # same argon2 cost as a wrong password
            verify_password(password, dummy_password_hash())
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return self._start_session(user)

    def authenticate(self, access_token: str) -> AccessTokenClaims:
        return self._signer.verify(access_token)

    def current_user(self, claims: AccessTokenClaims) -> User:
        with _store_call("looking up user"):
            user = self._users.find_by_id(claims.user_id)
        if user is None:
            raise InvalidToken()
        return user

    # -- refresh sessions --------------------------------------------------

    def issue_new(self, user_id: int) -> IssuedSession:
        """Start a new family for `user_id`; the raw token is only returned, never stored."""
        raw_token, token_hash = generate_refresh_token()
        now = self._now()
        with _store_call("creating refresh session"):
            session = self._sessions.create(
                user_id=user_id,
                family_id=str(uuid.uuid4()),
                token_hash=token_hash,
                issued_at=now,
                expires_at=now + self._refresh_ttl,
            )
        return IssuedSession(raw_token=raw_token, session=session)

    def rotate(self, raw_token: str) -> AuthResult:
        with _store_call("looking up refresh session"):
            session = self._sessions.find_by_token_hash(hash_refresh_token(raw_token))
        if session is None:
            raise RefreshRejected(RejectReason.INVALID)

        now = self._now()
        if not session.is_active(now):
            self._revoke_family_after_reuse(session)
            raise RefreshRejected(RejectReason.INACTIVE)

        with _store_call("looking up user"):
            user = self._users.find_by_id(session.user_id)
        if user is None:
            raise RefreshRejected(RejectReason.INVALID)

        # signed before the rotation commits so a signing fault cannot strand the family
        access_token = self._signer.issue(user.id, user.username)

        new_raw, new_hash = generate_refresh_token()
        expires_at = now + self._refresh_ttl
        with _store_call("rotating refresh session"):
            successor = self._sessions.rotate(session, new_hash, now, expires_at)
        if successor is None:
            # lost a concurrent rotation: same signal as a replayed token
            self._revoke_family_after_reuse(session)
            raise RefreshRejected(RejectReason.INACTIVE)

        return AuthResult(
            access_token=access_token,
            user=user,
            refresh_token=new_raw,
            refresh_expires_at=expires_at,
        )

    def revoke(self, raw_token: str, reason: str = LOGOUT_REASON) -> None:
        """Revoke the session behind `raw_token`. Unknown or already revoked tokens are a no-op."""
        with _store_call("revoking refresh session"):
            self._sessions.revoke_by_token_hash(hash_refresh_token(raw_token), reason, self._now())

    def revoke_family(self, family_id: str, reason: str) -> None:
        with _store_call("revoking refresh family"):
            revoked = self._sessions.revoke_family(family_id, reason, self._now())
        logger.info("Revoked %d session(s) in family %s: %s", revoked, family_id, reason)

    # -- helpers -----------------------------------------------------------

    def _start_session(self, user: User) -> AuthResult:
        access_token = self._signer.issue(user.id, user.username)
        issued = self.issue_new(user.id)
        return AuthResult(
            access_token=access_token,
            user=user,
            refresh_token=issued.raw_token,
            refresh_expires_at=issued.session.expires_at,
        )

    def _revoke_family_after_reuse(self, session: RefreshSession) -> None:
        logger.warning(
            "Inactive refresh session %s presented for user %s; revoking family %s",
            session.id,
            session.user_id,
            session.family_id,
        )
        try:
            self.revoke_family(session.family_id, REUSE_REASON)
        except InfrastructureError:
            # already logged; the caller is rejected either way
            pass


def _require_credentials(username, password) -> str:
    username = username.strip() if isinstance(username, str) else ""
    if not username or not isinstance(password, str) or password == "":
        raise ValidationFailed("Fields 'username' and 'password' are required")
    return username
