"""HOTP (RFC 4226) and TOTP (RFC 6238) code generation.

Codes come from :mod:`pyotp`; this module validates inputs first so callers
get typed errors instead of ``ValueError``.

TOTP only maps wall-clock time onto the counter: ``floor(unix / period)``.
Every function here is pure; callers own scheduling and clocks.
"""
from __future__ import annotations

import hashlib
from enum import Enum

import pyotp

from mfa.core.time import Instant, unix_seconds

from . import base32
from .exceptions import InvalidCredentialError, InvalidSecretError, UnsupportedAlgorithmError

DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30
MAX_COUNTER = 2**64 - 1


class HashAlgorithm(str, Enum):
    """HMAC hash family. SHA1 stays the default for legacy issuers."""

    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def digestmod(self):
        return _DIGESTS[self]

    @classmethod
    def coerce(cls, value: "HashAlgorithm | str") -> "HashAlgorithm":
        """Return the enum member for *value* (case-insensitive)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise UnsupportedAlgorithmError(value)


_DIGESTS = {
    HashAlgorithm.SHA1: hashlib.sha1,
    HashAlgorithm.SHA256: hashlib.sha256,
    HashAlgorithm.SHA512: hashlib.sha512,
}


def compute_hotp(
    secret: bytes,
    counter: int,
    digits: int = DEFAULT_DIGITS,
    algorithm: HashAlgorithm | str = HashAlgorithm.SHA1,
) -> str:
    """Return the HOTP code for *counter* as a zero-padded decimal string.

    Raises:
        InvalidSecretError: *secret* is empty.
        UnsupportedAlgorithmError: *algorithm* is not SHA1/SHA256/SHA512.
        InvalidCredentialError: *counter* or *digits* is out of range.
    """
    if not secret:
        raise InvalidSecretError("secret is empty")
    algorithm = HashAlgorithm.coerce(algorithm)
    if not 0 <= counter <= MAX_COUNTER:
        raise InvalidCredentialError("counter must fit in 64 unsigned bits", field="counter")
    if not 1 <= digits <= 10:
        raise InvalidCredentialError("digits must be between 1 and 10", field="digits")

    hotp = pyotp.HOTP(base32.encode(secret), digits=digits, digest=algorithm.digestmod)
    return hotp.at(counter)


def time_counter(at: Instant = None, period: int = DEFAULT_PERIOD) -> int:
    if period <= 0:
        raise InvalidCredentialError("period must be positive", field="period")
    return unix_seconds(at) // period


def compute_totp(
    secret: bytes,
    at: Instant = None,
    period: int = DEFAULT_PERIOD,
    digits: int = DEFAULT_DIGITS,
    algorithm: HashAlgorithm | str = HashAlgorithm.SHA1,
) -> str:
    """Return the TOTP code valid at *at* (defaults to now).

    Exactly one counter value is used; there is no skew window.
    """
    return compute_hotp(secret, time_counter(at, period), digits, algorithm)


def seconds_remaining(period: int = DEFAULT_PERIOD, at: Instant = None) -> int:
    """Seconds left before the code for *at* rolls over."""
    if period <= 0:
        raise InvalidCredentialError("period must be positive", field="period")
    return period - (unix_seconds(at) % period)
