"""Unit tests for auth/validation.py -- email shape and password strength."""

import pytest

from auth.errors import BadEmailError, BadPasswordError
from auth.validation import CredentialPolicy


@pytest.mark.parametrize(
    "email",
    ["a@b.com", "first.last+tag@example.co.uk", "x_y%z-1@sub.domain.org", "UPPER@EXAMPLE.IO"],
)
def test_valid_emails_pass(policy: CredentialPolicy, email: str) -> None:
    policy.validate_email(email)


@pytest.mark.parametrize(
    "email",
    [
        "not-an-email",
        "",
        "a@b",
        "a@b.c",
        "@example.com",
        "a b@example.com",
        "a@exa_mple.com",
        "a@example.com\n",
        "a@@example.com",
        "a@example.c0m",
    ],
)
def test_invalid_emails_fail(policy: CredentialPolicy, email: str) -> None:
    with pytest.raises(BadEmailError):
        policy.validate_email(email)


def test_too_short_password_fails(policy: CredentialPolicy) -> None:
    with pytest.raises(BadPasswordError):
        policy.validate_password_strength("short1")


def test_missing_uppercase_fails(policy: CredentialPolicy) -> None:
    with pytest.raises(BadPasswordError):
        policy.validate_password_strength("alllowercase1")


def test_missing_lowercase_fails(policy: CredentialPolicy) -> None:
    with pytest.raises(BadPasswordError):
        policy.validate_password_strength("ALLUPPER123")


def test_missing_digit_fails(policy: CredentialPolicy) -> None:
    with pytest.raises(BadPasswordError):
        policy.validate_password_strength("NoDigitsHere")


def test_strong_password_passes(policy: CredentialPolicy) -> None:
    policy.validate_password_strength("Valid123")


def test_special_characters_not_required_but_allowed(policy: CredentialPolicy) -> None:
    policy.validate_password_strength("Valid123!@#")


def test_minimum_is_configurable() -> None:
    strict = CredentialPolicy(min_password_length=12)
    with pytest.raises(BadPasswordError):
        strict.validate_password_strength("Valid123")
    strict.validate_password_strength("Valid1234567")


def test_non_decimal_digit_does_not_count(policy: CredentialPolicy) -> None:
    with pytest.raises(BadPasswordError):
        policy.validate_password_strength("Validpass²")


def test_password_at_byte_limit_passes(policy: CredentialPolicy) -> None:
    # 16-char salt leaves 56 bytes
    policy.validate_password_strength("Valid123" + "a" * 48)


def test_password_over_byte_limit_fails(policy: CredentialPolicy) -> None:
    with pytest.raises(BadPasswordError):
        policy.validate_password_strength("Valid123" + "a" * 49)


def test_byte_limit_counts_utf8_bytes(policy: CredentialPolicy) -> None:
    # 32 characters, 58 bytes
    with pytest.raises(BadPasswordError):
        policy.validate_password_strength("Valid1" + "й" * 26)


def test_byte_limit_follows_salt_length() -> None:
    long_salt = CredentialPolicy(min_password_length=8, salt_length=60)
    long_salt.validate_password_strength("Valid123" + "a" * 4)
    with pytest.raises(BadPasswordError):
        long_salt.validate_password_strength("Valid123" + "a" * 5)
