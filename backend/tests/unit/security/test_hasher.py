from __future__ import annotations

import pytest
from tokengate.security.hasher import CredentialHasher


@pytest.fixture()
def hasher() -> CredentialHasher:
    return CredentialHasher(method="pbkdf2:sha256:1000")


def test_hash_is_salted_and_verifies(hasher):
    first = hasher.hash("s3cret")
    second = hasher.hash("s3cret")

    assert first != second
    assert "s3cret" not in first
    assert hasher.verify("s3cret", first)
    assert hasher.verify("s3cret", second)


def test_verify_rejects_wrong_plaintext(hasher):
    digest = hasher.hash("s3cret")
    assert hasher.verify("S3cret", digest) is False


@pytest.mark.parametrize("digest", [None, "", "not-a-digest", "unknown$salt$hash"])
def test_verify_returns_false_for_missing_or_malformed_digest(hasher, digest):
    assert hasher.verify("s3cret", digest) is False


def test_hash_rejects_empty_secret(hasher):
    with pytest.raises(ValueError):
        hasher.hash("")


def test_dummy_digest_is_stable_and_matches_nothing_obvious(hasher):
    digest = hasher.dummy_digest

    assert digest is hasher.dummy_digest
    assert hasher.verify("", digest) is False
    assert hasher.verify("password", digest) is False
