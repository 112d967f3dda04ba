"""Insertion-ordered credential collection with a current selection."""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from mfa.otp.domain.entities import CredentialRecord
from mfa.otp.domain.exceptions import CredentialNotFoundError, DuplicateCredentialError


class CredentialCollection:
    def __init__(self, records: Iterable[CredentialRecord] = ()):
        self._records: Dict[str, CredentialRecord] = {}
        self.selected_id: Optional[str] = None
        for record in records:
            self.add(record)

    def __iter__(self) -> Iterator[CredentialRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, credential_id: object) -> bool:
        return credential_id in self._records

    @property
    def records(self) -> List[CredentialRecord]:
        return list(self._records.values())

    def get(self, credential_id: str) -> CredentialRecord:
        try:
            return self._records[credential_id]
        except KeyError:
            raise CredentialNotFoundError(credential_id) from None

    def add(self, record: CredentialRecord) -> CredentialRecord:
        if record.id in self._records:
            raise DuplicateCredentialError(record.id)
        self._records[record.id] = record
        return record

    def update(self, record: CredentialRecord) -> CredentialRecord:
        """Replace the record with the same id, keeping its position."""
        if record.id not in self._records:
            raise CredentialNotFoundError(record.id)
        self._records[record.id] = record
        return record

    def remove(self, credential_id: str) -> CredentialRecord:
        record = self.get(credential_id)
        del self._records[credential_id]
        if self.selected_id == credential_id:
            self.selected_id = None
        return record

    def select(self, credential_id: Optional[str]) -> Optional[CredentialRecord]:
        if credential_id is None:
            self.selected_id = None
            return None
        record = self.get(credential_id)
        self.selected_id = credential_id
        return record

    @property
    def selected(self) -> Optional[CredentialRecord]:
        if self.selected_id is None:
            return None
        return self._records.get(self.selected_id)

    def find_by_name_and_issuer(self, name: str, issuer: str) -> Optional[CredentialRecord]:
        for record in self._records.values():
            if record.name == name and record.issuer == issuer:
                return record
        return None

    def replace_all(self, records: Iterable[CredentialRecord]) -> None:
        fresh = CredentialCollection(records)
        self._records = fresh._records
        if self.selected_id not in self._records:
            self.selected_id = None
