"""OTP credential entities."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from mfa.core.time import Instant, parse_isoformat, to_isoformat, utc_now

from . import base32
from .exceptions import InvalidCredentialError
from .hotp import DEFAULT_DIGITS, DEFAULT_PERIOD, HashAlgorithm, compute_hotp, compute_totp, seconds_remaining
from .validators import (
    ensure_non_empty,
    validate_algorithm,
    validate_counter,
    validate_digits,
    validate_period,
    validate_secret,
)


class OTPKind(str, Enum):
    TOTP = "totp"  # time-based
    HOTP = "hotp"  # counter-based

    @classmethod
    def coerce(cls, value: "OTPKind | str") -> "OTPKind":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidCredentialError("kind must be totp or hotp", field="kind")


def new_credential_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class CredentialRecord:
    """One enrolled OTP source.

    Instances are built through :meth:`create` (or :meth:`from_dict` when
    restoring), so an existing record always has a decodable secret and
    in-range parameters.
    """

    id: str
    name: str
    issuer: str
    secret: str
    algorithm: HashAlgorithm = HashAlgorithm.SHA1
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    kind: OTPKind = OTPKind.TOTP
    counter: int = 0
    icon_name: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls,
        name: str,
        issuer: str,
        secret: str,
        *,
        algorithm: HashAlgorithm | str | None = HashAlgorithm.SHA1,
        digits: int = DEFAULT_DIGITS,
        period: int = DEFAULT_PERIOD,
        kind: OTPKind | str = OTPKind.TOTP,
        counter: int = 0,
        icon_name: Optional[str] = None,
        id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        require_issuer: bool = True,
    ) -> "CredentialRecord":
        """Validate the fields and build a record.

        Raises:
            InvalidCredentialError: for the first field that fails, in the
                order name, issuer, secret, algorithm, kind, digits, period,
                counter.
        """
        name = ensure_non_empty(name, "name")
        if require_issuer:
            issuer = ensure_non_empty(issuer, "issuer")
        elif issuer is None:
            issuer = ""
        elif isinstance(issuer, str):
            issuer = issuer.strip()
        else:
            raise InvalidCredentialError("issuer must be text", field="issuer")
        normalized_secret = validate_secret(secret)
        algorithm = validate_algorithm(algorithm)
        kind = OTPKind.coerce(kind)
        digits = validate_digits(digits)
        period = validate_period(period)
        counter = validate_counter(counter)
        if icon_name is not None and not isinstance(icon_name, str):
            raise InvalidCredentialError("icon_name must be text", field="icon_name")
        icon_name = icon_name.strip() if icon_name and icon_name.strip() else None

        return cls(
            id=id or new_credential_id(),
            name=name,
            issuer=issuer,
            secret=normalized_secret,
            algorithm=algorithm,
            digits=digits,
            period=period,
            kind=kind,
            counter=counter,
            icon_name=icon_name,
            created_at=created_at or utc_now(),
        )

    @property
    def secret_bytes(self) -> bytes:
        return base32.decode(self.secret)

    @property
    def is_counter_based(self) -> bool:
        return self.kind is OTPKind.HOTP

    def generate_code(self, at: Instant = None) -> str:
        """Code for the current moving factor.

        Counter-based records use the stored counter and do not advance it;
        advancing and persisting is the owning collection's job.
        """
        if self.kind is OTPKind.HOTP:
            return compute_hotp(self.secret_bytes, self.counter, self.digits, self.algorithm)
        return compute_totp(self.secret_bytes, at, self.period, self.digits, self.algorithm)

    def seconds_remaining(self, at: Instant = None) -> Optional[int]:
        if self.kind is OTPKind.HOTP:
            return None
        return seconds_remaining(self.period, at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "issuer": self.issuer,
            "secret": self.secret,
            "algorithm": self.algorithm.value,
            "digits": self.digits,
            "period": self.period,
            "kind": self.kind.value,
            "counter": self.counter,
            "icon_name": self.icon_name,
            "created_at": to_isoformat(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        """Rebuild a record from :meth:`to_dict` output, re-validating it."""
        try:
            record_id = data["id"]
            created_raw = data.get("created_at")
            created_at = parse_isoformat(created_raw) if created_raw else None
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise InvalidCredentialError("malformed credential entry", field="id") from exc
        if not isinstance(record_id, str) or not record_id:
            raise InvalidCredentialError("credential id must be a non-empty string", field="id")
        return cls.create(
            data.get("name"),
            data.get("issuer"),
            data.get("secret"),
            algorithm=data.get("algorithm"),
            digits=data.get("digits", DEFAULT_DIGITS),
            period=data.get("period", DEFAULT_PERIOD),
            kind=data.get("kind", OTPKind.TOTP.value),
            counter=data.get("counter", 0),
            icon_name=data.get("icon_name"),
            id=record_id,
            created_at=created_at,
            require_issuer=False,
        )


@dataclass(slots=True)
class OTPPreview:
    """Display data for one record."""

    record_id: str
    otp: Optional[str]
    remaining_seconds: Optional[int]
