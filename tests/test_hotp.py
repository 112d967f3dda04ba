import hashlib
from datetime import datetime, timezone

import pyotp
import pytest

from mfa.otp.domain.exceptions import InvalidCredentialError, InvalidSecretError, UnsupportedAlgorithmError
from mfa.otp.domain.hotp import (
    MAX_COUNTER,
    HashAlgorithm,
    compute_hotp,
    compute_totp,
    seconds_remaining,
    time_counter,
)

RFC4226_SECRET = b"12345678901234567890"
RFC4226_CODES = ["755224", "287082", "359152", "969429", "338314", "254676", "287922", "162583", "399871", "520489"]

SHA1_KEY = b"12345678901234567890"
SHA256_KEY = b"12345678901234567890123456789012"
SHA512_KEY = b"1234567890123456789012345678901234567890123456789012345678901234"

RFC6238_VECTORS = [
    (59, "94287082", "46119246", "90693936"),
    (1111111109, "07081804", "68084774", "25091201"),
    (1111111111, "14050471", "67062674", "99943326"),
    (1234567890, "89005924", "91819424", "93441116"),
    (2000000000, "69279037", "90698825", "38618901"),
    (20000000000, "65353130", "77737706", "47863826"),
]


@pytest.mark.parametrize("counter, expected", list(enumerate(RFC4226_CODES)))
def test_hotp_rfc4226_vectors(counter, expected):
    assert compute_hotp(RFC4226_SECRET, counter) == expected


@pytest.mark.parametrize("at, sha1, sha256, sha512", RFC6238_VECTORS)
def test_totp_rfc6238_vectors(at, sha1, sha256, sha512):
    assert compute_totp(SHA1_KEY, at, 30, 8, HashAlgorithm.SHA1) == sha1
    assert compute_totp(SHA256_KEY, at, 30, 8, HashAlgorithm.SHA256) == sha256
    assert compute_totp(SHA512_KEY, at, 30, 8, "sha512") == sha512


def test_totp_accepts_datetime():
    at = datetime.fromtimestamp(1111111109, timezone.utc)
    assert compute_totp(SHA1_KEY, at, 30, 8) == "07081804"


def test_same_window_same_code():
    assert compute_totp(SHA1_KEY, 60) == compute_totp(SHA1_KEY, 89)
    assert compute_totp(SHA1_KEY, 89) != compute_totp(SHA1_KEY, 90)


@pytest.mark.parametrize("digits", [1, 6, 7, 8, 10])
def test_code_length_matches_digits(digits):
    for counter in range(20):
        code = compute_hotp(RFC4226_SECRET, counter, digits)
        assert len(code) == digits
        assert code.isdigit()


def test_matches_pyotp():
    secret = pyotp.random_base32()
    key = pyotp.TOTP(secret).byte_secret()
    for at in (59, 1_111_111_109, 1_700_000_000, 4_102_444_800):
        assert compute_totp(key, at) == pyotp.TOTP(secret).at(at)
    for counter in (0, 1, 42, 10**6):
        assert compute_hotp(key, counter) == pyotp.HOTP(secret).at(counter)


def test_matches_pyotp_sha256_sha512():
    secret = pyotp.random_base32()
    key = pyotp.TOTP(secret).byte_secret()
    for algorithm, digest in ((HashAlgorithm.SHA256, hashlib.sha256), (HashAlgorithm.SHA512, hashlib.sha512)):
        oracle = pyotp.TOTP(secret, digits=8, digest=digest, interval=60)
        for at in (59, 1_234_567_890, 2_000_000_000):
            assert compute_totp(key, at, 60, 8, algorithm) == oracle.at(at)


def test_errors():
    with pytest.raises(InvalidSecretError):
        compute_hotp(b"", 0)
    with pytest.raises(UnsupportedAlgorithmError):
        compute_hotp(RFC4226_SECRET, 0, 6, "MD5")
    with pytest.raises(InvalidCredentialError) as excinfo:
        compute_hotp(RFC4226_SECRET, -1)
    assert excinfo.value.field == "counter"
    with pytest.raises(InvalidCredentialError):
        compute_hotp(RFC4226_SECRET, MAX_COUNTER + 1)
    with pytest.raises(InvalidCredentialError) as excinfo:
        compute_hotp(RFC4226_SECRET, 0, 0)
    assert excinfo.value.field == "digits"
    with pytest.raises(InvalidCredentialError):
        time_counter(0, 0)


def test_max_counter_is_accepted():
    assert len(compute_hotp(RFC4226_SECRET, MAX_COUNTER)) == 6


def test_seconds_remaining():
    assert seconds_remaining(30, 0) == 30
    assert seconds_remaining(30, 29) == 1
    assert seconds_remaining(30, 30.9) == 30
    assert seconds_remaining(60, 1111111109) == 60 - (1111111109 % 60)
    assert 1 <= seconds_remaining() <= 30


def test_algorithm_coerce_is_case_insensitive():
    assert HashAlgorithm.coerce("sha256") is HashAlgorithm.SHA256
    assert HashAlgorithm.coerce(HashAlgorithm.SHA512) is HashAlgorithm.SHA512
