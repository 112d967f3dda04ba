"""Validation utilities for credential fields."""
from __future__ import annotations

from typing import Optional

from . import base32
from .exceptions import (
    InvalidCredentialError,
    InvalidSecretError,
    UnsupportedAlgorithmError,
)
from .hotp import MAX_COUNTER, HashAlgorithm

ALLOWED_DIGITS = (6, 7, 8)


def ensure_non_empty(value: Optional[str], field: str) -> str:
    if not isinstance(value, str):
        raise InvalidCredentialError(f"{field} is required", field=field)
    stripped = value.strip()
    if not stripped:
        raise InvalidCredentialError(f"{field} is required", field=field)
    return stripped


def validate_secret(secret: Optional[str]) -> str:
    """Return the normalized Base32 form of *secret*."""
    if not isinstance(secret, str) or not secret.strip():
        raise InvalidSecretError("secret is required")
    if not base32.decode(secret):
        raise InvalidSecretError("secret has no Base32 characters")
    return base32.normalize(secret)


def validate_algorithm(algorithm: HashAlgorithm | str | None) -> HashAlgorithm:
    if not algorithm:
        return HashAlgorithm.SHA1
    try:
        return HashAlgorithm.coerce(algorithm)
    except UnsupportedAlgorithmError as exc:
        raise InvalidCredentialError("algorithm must be SHA1, SHA256 or SHA512", field="algorithm") from exc


def validate_digits(digits: int) -> int:
    if isinstance(digits, bool) or not isinstance(digits, int) or digits not in ALLOWED_DIGITS:
        raise InvalidCredentialError("digits must be 6, 7 or 8", field="digits")
    return digits


def validate_period(period: int) -> int:
    if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
        raise InvalidCredentialError("period must be a positive number of seconds", field="period")
    return period


def validate_counter(counter: int) -> int:
    if isinstance(counter, bool) or not isinstance(counter, int) or not 0 <= counter <= MAX_COUNTER:
        raise InvalidCredentialError("counter must be between 0 and 2**64 - 1", field="counter")
    return counter
