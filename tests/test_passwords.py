"""
tests/test_passwords.py -- Unit tests for auth.passwords (bcrypt).

Rounds are forced to 4 (bcrypt's minimum) to keep the suite fast; the digest
format and verification path are identical at any work factor.
"""

from __future__ import annotations

import pytest

from auth.errors import HashingFailure
from auth.passwords import BCRYPT_ROUNDS, hash_password, verify_password

ROUNDS = 4


def test_default_work_factor_is_twelve():
    assert BCRYPT_ROUNDS == 12


def test_hash_verifies():
    digest = hash_password("correct horse", rounds=ROUNDS)
    assert verify_password("correct horse", digest)


def test_wrong_password_does_not_verify():
    digest = hash_password("correct horse", rounds=ROUNDS)
    assert not verify_password("battery staple", digest)


def test_digest_is_salted():
    assert hash_password("same", rounds=ROUNDS) != hash_password("same", rounds=ROUNDS)


def test_digest_is_not_plaintext():
    digest = hash_password("hunter2", rounds=ROUNDS)
    assert "hunter2" not in digest
    assert digest.startswith("$2")


def test_work_factor_encoded_in_digest():
    assert hash_password("pw", rounds=ROUNDS).split("$")[2] == "04"


def test_empty_password_is_valid_input():
    digest = hash_password("", rounds=ROUNDS)
    assert verify_password("", digest)
    assert not verify_password("x", digest)


@pytest.mark.parametrize("digest", ["", "not-a-bcrypt-hash", "$2b$04$truncated"])
def test_corrupted_digest_is_mismatch_not_error(digest):
    assert verify_password("anything", digest) is False


def test_bcrypt_failure_surfaces_as_hashing_failure():
    # bcrypt refuses a work factor outside 4..31.
    with pytest.raises(HashingFailure):
        hash_password("pw", rounds=99)
