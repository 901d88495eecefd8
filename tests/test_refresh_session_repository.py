from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from models import storage
from models.refresh_session import RefreshSession
from models.repositories import SQLRefreshSessionRepository, SQLUserRepository
from utils.security import hash_refresh_token

FAMILY = "2b1f2f7e-5a52-4c1c-9a44-6d1f0f3c0a11"


@pytest.fixture(scope="function")
def repo(app):
    return SQLRefreshSessionRepository(storage)


@pytest.fixture(scope="function")
def user(app):
    return SQLUserRepository(storage).create("alice", "not-a-real-hash")


def _family(family_id):
    session = storage.get_session()
    return (
        session.query(RefreshSession)
        .filter(RefreshSession.family_id == family_id)
        .populate_existing()
        .order_by(RefreshSession.id)
        .all()
    )


def _start(repo, user, clock, raw="first", family_id=FAMILY):
    return repo.create(user.id, family_id, hash_refresh_token(raw), clock(), clock() + timedelta(hours=24))


def test_rotate_links_successor_in_same_family(repo, user, clock):
    old = _start(repo, user, clock)
    clock.advance(minutes=1)

    new = repo.rotate(old, hash_refresh_token("second"), clock(), clock() + timedelta(hours=24))

    first, second = _family(FAMILY)
    assert second.id == new.id
    assert first.consumed_at is not None
    assert first.replaced_by_session_id == new.id
    assert second.consumed_at is None and second.replaced_by_session_id is None
    assert second.user_id == user.id


def test_rotating_a_stale_row_twice_claims_nothing(repo, user, clock):
    old = _start(repo, user, clock)
    assert repo.rotate(old, hash_refresh_token("second"), clock(), clock() + timedelta(hours=24)) is not None

    again = repo.rotate(old, hash_refresh_token("third"), clock(), clock() + timedelta(hours=24))

    assert again is None
    family = _family(FAMILY)
    assert len(family) == 2
    assert repo.find_by_token_hash(hash_refresh_token("third")) is None


def test_revoked_row_cannot_be_rotated(repo, user, clock):
    old = _start(repo, user, clock)
    repo.revoke_by_token_hash(old.token_hash, "user logout", clock())

    assert repo.rotate(old, hash_refresh_token("second"), clock(), clock() + timedelta(hours=24)) is None
    assert len(_family(FAMILY)) == 1


def test_failed_successor_insert_leaves_old_row_untouched(repo, user, clock):
    old = _start(repo, user, clock)
    # another family already holds the hash the successor would use
    _start(repo, user, clock, raw="taken", family_id="other-family")

    with pytest.raises(IntegrityError):
        repo.rotate(old, hash_refresh_token("taken"), clock(), clock() + timedelta(hours=24))

    row = repo.find_by_token_hash(hash_refresh_token("first"))
    assert row.consumed_at is None
    assert row.replaced_by_session_id is None
    assert len(_family(FAMILY)) == 1

    # the old row is still claimable
    assert repo.rotate(row, hash_refresh_token("second"), clock(), clock() + timedelta(hours=24)) is not None


def test_revoke_family_skips_already_revoked_rows(repo, user, clock):
    old = _start(repo, user, clock)
    new = repo.rotate(old, hash_refresh_token("second"), clock(), clock() + timedelta(hours=24))
    repo.revoke_by_token_hash(new.token_hash, "user logout", clock())

    clock.advance(minutes=5)
    assert repo.revoke_family(FAMILY, "refresh token reuse or expired token", clock()) == 1

    first, second = _family(FAMILY)
    assert first.revoke_reason == "refresh token reuse or expired token"
    assert second.revoke_reason == "user logout"
