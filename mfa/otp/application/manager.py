"""Credential manager: the collection plus its encrypted persistence."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from mfa.core.logging_config import log_event_error, log_event_info
from mfa.core.time import Instant
from mfa.otp.application.collection import CredentialCollection
from mfa.otp.domain.entities import CredentialRecord, OTPKind, OTPPreview
from mfa.otp.domain.exceptions import InvalidCredentialError, StorageError
from mfa.otp.domain.hotp import MAX_COUNTER
from mfa.otp.infrastructure.store import EncryptedCredentialStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CredentialManager:
    """Owns the active collection and persists every mutation.

    Each mutation is applied to the in-memory collection and then the full
    collection is saved. When saving fails the collection is restored to its
    previous state and the storage error is raised to the caller.
    """

    def __init__(self, store: EncryptedCredentialStore, collection: Optional[CredentialCollection] = None):
        self.store = store
        self.collection = collection or CredentialCollection()
        self._lock = threading.RLock()
        self._record_locks: Dict[str, threading.Lock] = {}
        self._record_locks_guard = threading.Lock()

    @classmethod
    def open(cls, store: EncryptedCredentialStore) -> "CredentialManager":
        """Load the stored collection; storage errors propagate."""
        return cls(store, CredentialCollection(store.load()))

    # ------------------------------------------------------------------
    @property
    def records(self) -> List[CredentialRecord]:
        return self.collection.records

    def get(self, credential_id: str) -> CredentialRecord:
        return self.collection.get(credential_id)

    @property
    def selected(self) -> Optional[CredentialRecord]:
        return self.collection.selected

    def select(self, credential_id: Optional[str]) -> Optional[CredentialRecord]:
        with self._lock:
            return self.collection.select(credential_id)

    def reload(self) -> None:
        records = self.store.load()
        with self._lock:
            self.collection.replace_all(records)

    # ------------------------------------------------------------------
    def add(self, record: CredentialRecord, *, select: bool = False) -> CredentialRecord:
        def mutate() -> CredentialRecord:
            self.collection.add(record)
            if select:
                self.collection.select(record.id)
            return record

        added = self._commit(mutate)
        log_event_info(logger, "Credential added", event="credential.added", credential_id=record.id)
        return added

    def update(self, record: CredentialRecord, *, keep_counter: bool = False) -> CredentialRecord:
        """Replace the stored record with *record*.

        With ``keep_counter`` the counter is copied from the stored record
        under the manager lock, so codes issued meanwhile are not reissued.
        """

        def mutate() -> CredentialRecord:
            if keep_counter:
                record.counter = self.collection.get(record.id).counter
            return self.collection.update(record)

        updated = self._commit(mutate)
        log_event_info(logger, "Credential updated", event="credential.updated", credential_id=record.id)
        return updated

    def remove(self, credential_id: str) -> CredentialRecord:
        removed = self._commit(lambda: self.collection.remove(credential_id))
        with self._record_locks_guard:
            self._record_locks.pop(credential_id, None)
        log_event_info(logger, "Credential removed", event="credential.removed", credential_id=credential_id)
        return removed

    def upsert_many(self, records: Iterable[CredentialRecord]) -> List[CredentialRecord]:
        records = list(records)

        def mutate() -> List[CredentialRecord]:
            for record in records:
                if record.id in self.collection:
                    self.collection.update(record)
                else:
                    self.collection.add(record)
            return records

        return self._commit(mutate)

    # ------------------------------------------------------------------
    def current_code(self, credential_id: str, at: Instant = None) -> str:
        """Return the code to display for a record.

        For counter-based records the code is generated at the stored
        counter, the counter is advanced by one and the collection is saved
        before the code is returned. Generation for the same record is
        serialized.
        """
        record = self.collection.get(credential_id)
        if record.kind is not OTPKind.HOTP:
            return record.generate_code(at)

        with self._record_lock(credential_id):
            with self._lock:
                record = self.collection.get(credential_id)
                if record.counter >= MAX_COUNTER:
                    raise InvalidCredentialError("counter is exhausted", field="counter")
                code = record.generate_code()
                record.counter += 1
                try:
                    self.store.save(self.collection.records)
                except StorageError:
                    record.counter -= 1
                    log_event_error(
                        logger,
                        "Counter advance was not persisted",
                        event="credential.counter.persist_failed",
                        credential_id=credential_id,
                    )
                    raise
        return code

    def previews(self, at: Instant = None) -> List[OTPPreview]:
        """Codes for time-based records; counter-based records are not advanced."""
        previews: List[OTPPreview] = []
        for record in self.collection:
            if record.kind is OTPKind.HOTP:
                previews.append(OTPPreview(record_id=record.id, otp=None, remaining_seconds=None))
                continue
            previews.append(
                OTPPreview(
                    record_id=record.id,
                    otp=record.generate_code(at),
                    remaining_seconds=record.seconds_remaining(at),
                )
            )
        return previews

    # ------------------------------------------------------------------
    def _record_lock(self, credential_id: str) -> threading.Lock:
        with self._record_locks_guard:
            lock = self._record_locks.get(credential_id)
            if lock is None:
                lock = self._record_locks[credential_id] = threading.Lock()
            return lock

    def _commit(self, mutate: Callable[[], T]) -> T:
        with self._lock:
            snapshot = self.collection.records
            selected_id = self.collection.selected_id
            try:
                result = mutate()
                self.store.save(self.collection.records)
            except Exception:
                self.collection.replace_all(snapshot)
                self.collection.selected_id = selected_id
                raise
            return result
