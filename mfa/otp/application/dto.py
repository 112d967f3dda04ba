"""Credential application-layer DTOs"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional


@dataclass(slots=True)
class CredentialCreateInput:
    name: str
    issuer: str
    secret: str
    algorithm: str = "SHA1"
    kind: str = "totp"
    digits: int = 6
    period: int = 30
    counter: int = 0
    icon_name: Optional[str] = None


@dataclass(slots=True)
class CredentialUpdateInput:
    """Full-field edit of an existing record.

    ``secret`` and ``counter`` left as ``None`` keep the stored values; an
    explicit ``counter`` resynchronizes a counter-based record.
    """

    id: str
    name: str
    issuer: str
    algorithm: str
    kind: str
    digits: int
    period: int
    secret: Optional[str] = None
    counter: Optional[int] = None
    icon_name: Optional[str] = None


@dataclass(slots=True)
class CredentialImportItem:
    name: str
    issuer: str
    secret: str
    created_at: Optional[datetime | str] = None
    algorithm: str = "SHA1"
    kind: str = "totp"
    digits: int = 6
    period: int = 30
    counter: int = 0
    icon_name: Optional[str] = None


@dataclass(slots=True)
class CredentialImportPayload:
    items: Iterable[CredentialImportItem]
    force: bool = False
