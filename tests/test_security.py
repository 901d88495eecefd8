from datetime import timedelta

import jwt
import pytest

from utils.exceptions import ConfigurationError, InfrastructureError, InvalidToken
from utils.security import TokenSigner, hash_password, hash_refresh_token, verify_password

from tests.conftest import TEST_SECRET


def test_password_hash_round_trip():
    digest = hash_password("correct horse")
    assert digest != "correct horse"
    assert verify_password("correct horse", digest) is True


def test_password_mismatch_is_not_an_error():
    digest = hash_password("correct horse")
    assert verify_password("battery staple", digest) is False


def test_password_hashes_are_salted():
    assert hash_password("same") != hash_password("same")


def test_malformed_password_hash_is_infrastructure_error():
    with pytest.raises(InfrastructureError):
        verify_password("anything", "not-an-argon2-hash")


def test_refresh_token_hash_is_deterministic():
    assert hash_refresh_token("abc") == hash_refresh_token("abc")
    assert hash_refresh_token("abc") != hash_refresh_token("abd")
    assert len(hash_refresh_token("abc")) == 64


def test_issued_token_carries_identity_claims(signer, clock):
    token = signer.issue(7, "alice")
    claims = signer.verify(token)

    assert claims.user_id == 7
    assert claims.username == "alice"
    assert claims.subject == "7"
    assert claims.issued_at == clock()
    assert claims.expires_at == clock() + timedelta(minutes=15)


def test_token_expires_after_ttl(signer, clock):
    token = signer.issue(7, "alice")
    clock.advance(minutes=14, seconds=59)
    signer.verify(token)

    clock.advance(seconds=1)
    with pytest.raises(InvalidToken):
        signer.verify(token)


def test_token_signed_with_other_secret_is_rejected(signer, clock):
    other = TokenSigner("another-secret-0123456789-abcdefghijklmnopqrstuvwxyz", timedelta(minutes=15), now=clock)
    with pytest.raises(InvalidToken):
        signer.verify(other.issue(7, "alice"))


@pytest.mark.parametrize("algorithm", ["HS384", "HS512"])
def test_token_signed_with_other_algorithm_is_rejected(signer, clock, algorithm):
    payload = {
        "userId": 7,
        "username": "alice",
        "sub": "7",
        "iat": int(clock().timestamp()),
        "exp": int((clock() + timedelta(minutes=5)).timestamp()),
    }
    token = jwt.encode(payload, TEST_SECRET, algorithm=algorithm)
    with pytest.raises(InvalidToken):
        signer.verify(token)


def test_unsigned_token_is_rejected(signer, clock):
    payload = {
        "userId": 7,
        "username": "alice",
        "sub": "7",
        "iat": int(clock().timestamp()),
        "exp": int((clock() + timedelta(minutes=5)).timestamp()),
    }
    token = jwt.encode(payload, None, algorithm="none")
    with pytest.raises(InvalidToken):
        signer.verify(token)


@pytest.mark.parametrize(
    "payload",
    [
        {"username": "alice", "sub": "7"},
        {"userId": 0, "username": "alice", "sub": "0"},
        {"userId": "7", "username": "alice", "sub": "7"},
        {"userId": 7, "username": "alice", "sub": "8"},
        {"userId": 7, "sub": "7"},
    ],
)
def test_token_with_bad_claims_is_rejected(signer, clock, payload):
    payload = dict(payload)
    payload["iat"] = int(clock().timestamp())
    payload["exp"] = int((clock() + timedelta(minutes=5)).timestamp())
    token = jwt.encode(payload, TEST_SECRET, algorithm="HS256")
    with pytest.raises(InvalidToken):
        signer.verify(token)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token_is_rejected_with_generic_message(signer, token):
    with pytest.raises(InvalidToken) as exc_info:
        signer.verify(token)
    assert exc_info.value.message == "Invalid or expired access token"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"secret": "", "ttl": timedelta(minutes=1)},
        {"secret": "   ", "ttl": timedelta(minutes=1)},
        {"secret": TEST_SECRET, "ttl": timedelta(0)},
        {"secret": TEST_SECRET, "ttl": timedelta(minutes=1), "algorithm": "RS256"},
        {"secret": TEST_SECRET, "ttl": timedelta(minutes=1), "algorithm": "none"},
    ],
)
def test_signer_rejects_unusable_configuration(kwargs):
    with pytest.raises(ConfigurationError):
        TokenSigner(**kwargs)
