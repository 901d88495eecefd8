"""
Persistence for refresh sessions.

No business rules live here beyond keeping the chain invariants:
rotate() is the only operation that writes two rows, and it does so
inside one transaction guarded by a compare-and-swap on the old row.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from models.refresh_session import RefreshSession


class RefreshSessionRepository(Protocol):
    def create(
        self,
        user_id: int,
        family_id: str,
        token_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> RefreshSession:
        ...

    def find_by_token_hash(self, token_hash: str) -> Optional[RefreshSession]:
        ...

    def rotate(
        self,
        old: RefreshSession,
        new_token_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> Optional[RefreshSession]:
        """
        Insert the successor of `old` in the same family and mark `old`
        consumed, both or neither. Returns None when `old` was no longer
        active at write time (a concurrent rotation or revocation won).
        """
        ...

    def revoke_family(self, family_id: str, reason: str, revoked_at: datetime) -> int:
        ...

    def revoke_by_token_hash(self, token_hash: str, reason: str, revoked_at: datetime) -> int:
        ...


class SQLRefreshSessionRepository:
    def __init__(self, storage):
        self._storage = storage

    def create(self, user_id, family_id, token_hash, issued_at, expires_at):
        row = RefreshSession(
            user_id=user_id,
            family_id=family_id,
            token_hash=token_hash,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        self._storage.new(row)
        self._storage.save()
        return row

    def find_by_token_hash(self, token_hash):
        session = self._storage.get_session()
        return (
            session.query(RefreshSession)
            .filter(RefreshSession.token_hash == token_hash)
            .populate_existing()
            .first()
        )

    def rotate(self, old, new_token_hash, issued_at, expires_at):
        session = self._storage.get_session()
        try:
            claimed = session.execute(
                update(RefreshSession)
                .where(
                    RefreshSession.id == old.id,
                    RefreshSession.consumed_at.is_(None),
                    RefreshSession.revoked_at.is_(None),
                    RefreshSession.replaced_by_session_id.is_(None),
                )
                .values(consumed_at=issued_at)
            ).rowcount
            if claimed != 1:
                session.rollback()
                return None

            successor = RefreshSession(
                user_id=old.user_id,
                family_id=old.family_id,
                token_hash=new_token_hash,
                issued_at=issued_at,
                expires_at=expires_at,
            )
            session.add(successor)
            session.flush()

            session.execute(
                update(RefreshSession)
                .where(RefreshSession.id == old.id)
                .values(replaced_by_session_id=successor.id)
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        return successor

    def revoke_family(self, family_id, reason, revoked_at):
        return self._revoke(RefreshSession.family_id == family_id, reason, revoked_at)

    def revoke_by_token_hash(self, token_hash, reason, revoked_at):
        return self._revoke(RefreshSession.token_hash == token_hash, reason, revoked_at)

    def _revoke(self, criterion, reason, revoked_at) -> int:
        session = self._storage.get_session()
        try:
            result = session.execute(
                update(RefreshSession)
                .where(criterion, RefreshSession.revoked_at.is_(None))
                .values(revoked_at=revoked_at, revoke_reason=reason)
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        return result.rowcount
