"""Credential use cases called by the UI layer."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from mfa.core.time import Instant, parse_isoformat, to_isoformat
from mfa.otp.application.dto import (
    CredentialCreateInput,
    CredentialImportItem,
    CredentialImportPayload,
    CredentialUpdateInput,
)
from mfa.otp.application.manager import CredentialManager
from mfa.otp.domain.entities import CredentialRecord, OTPPreview
from mfa.otp.domain.exceptions import InvalidCredentialError
from mfa.otp.domain.parser import format_otpauth_uri, parse_otpauth_uri


class CredentialCreateUseCase:
    def __init__(self, manager: CredentialManager):
        self.manager = manager

    def execute(self, payload: CredentialCreateInput, *, select: bool = False) -> CredentialRecord:
        record = CredentialRecord.create(
            payload.name,
            payload.issuer,
            payload.secret,
            algorithm=payload.algorithm,
            kind=payload.kind,
            digits=payload.digits,
            period=payload.period,
            counter=payload.counter,
            icon_name=payload.icon_name,
        )
        return self.manager.add(record, select=select)


class CredentialFromURIUseCase:
    """Enroll a credential from a scanned ``otpauth://`` URI and select it."""

    def __init__(self, manager: CredentialManager):
        self.manager = manager

    def execute(self, uri: str, *, select: bool = True) -> CredentialRecord:
        record = parse_otpauth_uri(uri)
        return self.manager.add(record, select=select)


class CredentialUpdateUseCase:
    def __init__(self, manager: CredentialManager):
        self.manager = manager

    def execute(self, payload: CredentialUpdateInput) -> CredentialRecord:
        existing = self.manager.get(payload.id)
        keep_counter = payload.counter is None
        counter = existing.counter if keep_counter else payload.counter
        record = CredentialRecord.create(
            payload.name,
            payload.issuer,
            payload.secret if payload.secret else existing.secret,
            algorithm=payload.algorithm,
            kind=payload.kind,
            digits=payload.digits,
            period=payload.period,
            counter=counter,
            icon_name=payload.icon_name,
            id=existing.id,
            created_at=existing.created_at,
        )
        return self.manager.update(record, keep_counter=keep_counter)


class CredentialDeleteUseCase:
    def __init__(self, manager: CredentialManager):
        self.manager = manager

    def execute(self, credential_id: str) -> None:
        self.manager.remove(credential_id)


class CredentialListUseCase:
    def __init__(self, manager: CredentialManager):
        self.manager = manager

    def execute(self, at: Instant = None) -> List[tuple[CredentialRecord, OTPPreview]]:
        previews = {preview.record_id: preview for preview in self.manager.previews(at)}
        return [(record, previews[record.id]) for record in self.manager.records]


class CredentialExportUseCase:
    def __init__(self, manager: CredentialManager):
        self.manager = manager

    def execute(self) -> List[dict]:
        exported: List[dict] = []
        for record in self.manager.records:
            exported.append(
                {
                    "name": record.name,
                    "issuer": record.issuer,
                    "secret": record.secret,
                    "algorithm": record.algorithm.value,
                    "kind": record.kind.value,
                    "digits": record.digits,
                    "period": record.period,
                    "counter": record.counter,
                    "icon_name": record.icon_name,
                    "created_at": to_isoformat(record.created_at),
                    "otpauth_uri": format_otpauth_uri(record),
                }
            )
        return exported


def _parse_datetime(value: datetime | str | None) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if not isinstance(value, str):
        raise InvalidCredentialError("created_at must be an ISO 8601 string", field="created_at")
    if not value.strip():
        return None
    try:
        return parse_isoformat(value)
    except ValueError as exc:
        raise InvalidCredentialError("created_at is not an ISO 8601 timestamp", field="created_at") from exc


def items_from_export(entries: Iterable[dict]) -> List[CredentialImportItem]:
    """Turn :class:`CredentialExportUseCase` output back into import items."""
    items: List[CredentialImportItem] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise InvalidCredentialError("import entry must be an object", field="items")
        items.append(
            CredentialImportItem(
                name=entry.get("name"),
                issuer=entry.get("issuer") or "",
                secret=entry.get("secret"),
                created_at=entry.get("created_at"),
                algorithm=entry.get("algorithm") or "SHA1",
                kind=entry.get("kind") or "totp",
                digits=entry.get("digits", 6),
                period=entry.get("period", 30),
                counter=entry.get("counter", 0),
                icon_name=entry.get("icon_name"),
            )
        )
    return items


class CredentialImportUseCase:
    """Import records, reporting (name, issuer) conflicts unless forced.

    Without ``force`` nothing is written when any conflict exists. With
    ``force`` conflicting records are overwritten in place (their id is
    kept) and the rest are appended, all in a single save.
    """

    def __init__(self, manager: CredentialManager):
        self.manager = manager

    def _normalize_items(self, items: Iterable[CredentialImportItem]) -> List[CredentialRecord]:
        normalized: List[CredentialRecord] = []
        for item in items:
            normalized.append(
                CredentialRecord.create(
                    item.name,
                    item.issuer,
                    item.secret,
                    algorithm=item.algorithm,
                    kind=item.kind,
                    digits=item.digits,
                    period=item.period,
                    counter=item.counter,
                    icon_name=item.icon_name,
                    created_at=_parse_datetime(item.created_at),
                    require_issuer=False,
                )
            )
        return normalized

    def execute(self, payload: CredentialImportPayload) -> dict:
        items = list(payload.items)
        if not items:
            raise InvalidCredentialError("nothing to import", field="items")

        normalized = self._normalize_items(items)

        conflicts: List[dict] = []
        to_write: List[CredentialRecord] = []
        for record in normalized:
            existing = self.manager.collection.find_by_name_and_issuer(record.name, record.issuer)
            if existing:
                conflicts.append(
                    {
                        "name": record.name,
                        "issuer": record.issuer,
                        "existing_id": existing.id,
                    }
                )
                record.id = existing.id
                record.created_at = existing.created_at
            to_write.append(record)

        if conflicts and not payload.force:
            return {"conflicts": conflicts, "imported": []}

        imported = self.manager.upsert_many(to_write)
        return {
            "conflicts": conflicts,
            "imported": [record.id for record in imported],
        }
