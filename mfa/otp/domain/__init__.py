"""OTP domain objects: codec, engine, records and URI parsing."""

from .entities import CredentialRecord, OTPKind, OTPPreview
from .hotp import HashAlgorithm, compute_hotp, compute_totp, seconds_remaining
from .parser import format_otpauth_uri, parse_otpauth_uri

__all__ = [
    "CredentialRecord",
    "HashAlgorithm",
    "OTPKind",
    "OTPPreview",
    "compute_hotp",
    "compute_totp",
    "format_otpauth_uri",
    "parse_otpauth_uri",
    "seconds_remaining",
]
