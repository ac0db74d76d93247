from __future__ import annotations

import re
from datetime import timedelta

import pytest

from auth_service.domain.account import Account
from auth_service.errors import CredentialComparisonFailure
from auth_service.security.passwords import CredentialManager

from conftest import RESET_TTL


def _account() -> Account:
    return Account(account_id="acc-1", username="ann", email="ann@x.com")


def test_verify_accepts_hash_of_same_plaintext(credentials):
    for _ in range(3):
        assert credentials.verify("secret123", credentials.hash("secret123"))


def test_hash_is_salted_per_call(credentials):
    first = credentials.hash("secret123")
    second = credentials.hash("secret123")

    assert first != second
    assert first != "secret123"
    assert credentials.verify("secret123", first)
    assert credentials.verify("secret123", second)


def test_wrong_password_is_a_plain_mismatch(credentials):
    digest = credentials.hash("secret123")

    assert credentials.verify("wrong", digest) is False


def test_passwords_longer_than_bcrypt_limit_round_trip(credentials):
    long_password = "a" * 73
    digest = credentials.hash(long_password)

    assert credentials.verify(long_password, digest)
    assert credentials.verify("a" * 74, digest) is False
    assert credentials.verify("a" * 72, digest) is False


def test_long_wrong_password_is_a_plain_mismatch(credentials):
    digest = credentials.hash("secret123")

    assert credentials.verify("b" * 80, digest) is False


@pytest.mark.parametrize("digest", ["not-a-bcrypt-hash", "", None])
def test_corrupt_digest_raises_comparison_failure(credentials, digest):
    with pytest.raises(CredentialComparisonFailure):
        credentials.verify("secret123", digest)


@pytest.mark.parametrize("rounds", [3, 32])
def test_rounds_outside_bcrypt_range_are_rejected(rounds):
    with pytest.raises(ValueError):
        CredentialManager(rounds=rounds)


def test_reset_token_is_hex_and_expires_after_ttl(credentials, clock):
    account = _account()

    token, expires_at = credentials.issue_reset_token(account)

    assert re.fullmatch(r"[0-9a-f]{40}", token)
    assert expires_at == clock.current + timedelta(seconds=RESET_TTL)
    assert expires_at > clock.current
    assert account.reset_token == token
    assert account.reset_token_expires_at == expires_at


def test_reset_tokens_are_unique(credentials):
    account = _account()

    first, _ = credentials.issue_reset_token(account)
    second, _ = credentials.issue_reset_token(account)

    assert first != second
    assert account.reset_token == second


def test_reset_token_expiry(credentials, clock):
    account = _account()
    assert credentials.reset_token_expired(account)

    credentials.issue_reset_token(account)
    assert not credentials.reset_token_expired(account)

    clock.advance(RESET_TTL)
    assert credentials.reset_token_expired(account)


def test_prepare_for_write_hashes_staged_plaintext_once(credentials):
    account = _account()
    account.set_password("secret123")

    credentials.prepare_for_write(account)
    digest = account.password_hash

    assert account.password is None
    assert digest != "secret123"
    assert credentials.verify("secret123", digest)

    credentials.prepare_for_write(account)
    assert account.password_hash == digest


def test_prepare_for_write_replaces_digest_when_password_changes(credentials):
    account = _account()
    account.set_password("secret123")
    credentials.prepare_for_write(account)

    account.set_password("another-secret")
    credentials.prepare_for_write(account)

    assert credentials.verify("another-secret", account.password_hash)
    assert not credentials.verify("secret123", account.password_hash)


def test_plaintext_is_hidden_from_repr():
    account = _account()
    account.set_password("secret123")

    assert "secret123" not in repr(account)
