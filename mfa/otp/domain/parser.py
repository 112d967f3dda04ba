"""otpauth URI parsing and formatting"""
from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import parse_qs, quote, unquote, urlencode, urlparse

from . import base32
from .entities import CredentialRecord, OTPKind
from .exceptions import (
    InvalidSchemeError,
    MissingSecretError,
    UnsupportedAlgorithmError,
    UnsupportedKindError,
)
from .hotp import DEFAULT_DIGITS, DEFAULT_PERIOD, HashAlgorithm, compute_hotp, compute_totp

SCHEME = "otpauth"


def _int_or_default(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _algorithm_or_default(raw: Optional[str]) -> HashAlgorithm:
    # issuers send all sorts of spellings; unknown ones fall back to SHA1
    if not raw:
        return HashAlgorithm.SHA1
    try:
        return HashAlgorithm.coerce(raw)
    except UnsupportedAlgorithmError:
        return HashAlgorithm.SHA1


def _split_label(label: str, issuer_param: Optional[str]) -> tuple[str, str]:
    if ":" in label:
        issuer, name = label.split(":", 1)
        issuer = issuer.strip() or (issuer_param or "").strip()
        return issuer, name.strip()
    return (issuer_param or "").strip(), label.strip()


def _try_generate(secret: str, kind: OTPKind, algorithm: HashAlgorithm, digits: int, period: int, counter: int) -> None:
    """Generate one code so unusable secrets never reach the collection."""
    key = base32.decode(secret)
    if kind is OTPKind.HOTP:
        compute_hotp(key, counter, digits, algorithm)
    else:
        compute_totp(key, None, period, digits, algorithm)


def parse_otpauth_uri(uri: str) -> CredentialRecord:
    """Parse an ``otpauth://`` provisioning URI into a validated record.

    Raises:
        InvalidSchemeError: the scheme is not ``otpauth``.
        UnsupportedKindError: the authority is neither ``totp`` nor ``hotp``.
        MissingSecretError: there is no ``secret`` parameter.
        InvalidSecretError: the secret cannot generate a code.
        InvalidCredentialError: another field is out of range.
    """
    parsed = urlparse((uri or "").strip())
    if parsed.scheme.lower() != SCHEME:
        raise InvalidSchemeError(parsed.scheme)

    kind_raw = parsed.netloc.lower()
    try:
        kind = OTPKind(kind_raw)
    except ValueError as exc:
        raise UnsupportedKindError(parsed.netloc) from exc

    query: Dict[str, List[str]] = parse_qs(parsed.query)

    def first(key: str) -> Optional[str]:
        values = query.get(key)
        if not values:
            return None
        return values[0]

    label = unquote(parsed.path[1:] if parsed.path.startswith("/") else parsed.path)
    issuer, name = _split_label(label, first("issuer"))

    secret = first("secret")
    if not secret:
        raise MissingSecretError()

    algorithm = _algorithm_or_default(first("algorithm"))
    digits = _int_or_default(first("digits"), DEFAULT_DIGITS)
    period = DEFAULT_PERIOD
    counter = 0
    if kind is OTPKind.TOTP:
        period = _int_or_default(first("period"), DEFAULT_PERIOD)
    else:
        counter = _int_or_default(first("counter"), 0)

    _try_generate(secret, kind, algorithm, digits, period, counter)

    return CredentialRecord.create(
        name,
        issuer,
        secret,
        algorithm=algorithm,
        digits=digits,
        period=period,
        kind=kind,
        counter=counter,
        require_issuer=False,
    )


def format_otpauth_uri(record: CredentialRecord) -> str:
    """Build the provisioning URI for *record* (for QR display or export)."""
    label = quote(record.name, safe="@")
    # a name containing ":" always gets a prefix, even an empty one
    if record.issuer or ":" in record.name:
        label = f"{quote(record.issuer, safe='')}:{label}"

    params = {"secret": record.secret}
    if record.issuer:
        params["issuer"] = record.issuer
    params["algorithm"] = record.algorithm.value
    params["digits"] = str(record.digits)
    if record.kind is OTPKind.HOTP:
        params["counter"] = str(record.counter)
    else:
        params["period"] = str(record.period)
    return f"{SCHEME}://{record.kind.value}/{label}?{urlencode(params, quote_via=quote)}"
