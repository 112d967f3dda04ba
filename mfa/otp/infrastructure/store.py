"""Encrypted credential store.

Blob layout written to the preference store::

    version (1 byte) | nonce (12 bytes) | AES-256-GCM ciphertext + tag

The version byte is bound as associated data, so changing any byte of the
blob makes ``load`` fail authentication.  The plaintext is the canonical JSON
document ``{"version": 1, "records": [...]}``.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Iterable, List, Optional

from mfa.core import crypto
from mfa.core.logging_config import log_event_error, log_event_info
from mfa.otp.domain.entities import CredentialRecord
from mfa.otp.domain.exceptions import (
    CorruptOrTamperedError,
    InvalidCredentialError,
    KeyUnavailableError,
)
from mfa.otp.infrastructure.preferences import PreferenceStore
from mfa.otp.infrastructure.vault import KeyVault, VaultError, VaultItemExistsError

logger = logging.getLogger(__name__)

DEFAULT_BLOB_KEY = "mfa_accounts"
DEFAULT_VAULT_SERVICE = "com.example.mfa"
DEFAULT_VAULT_ACCOUNT = "encryption_key"

FORMAT_VERSION = 1
_VERSION_BYTE = bytes([FORMAT_VERSION])


def encode_records(records: Iterable[CredentialRecord]) -> bytes:
    document = {
        "version": FORMAT_VERSION,
        "records": [record.to_dict() for record in records],
    }
    return json.dumps(document, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def decode_records(payload: bytes) -> List[CredentialRecord]:
    try:
        document = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise CorruptOrTamperedError("credential payload is not valid JSON") from exc
    if not isinstance(document, dict) or document.get("version") != FORMAT_VERSION:
        raise CorruptOrTamperedError("unknown credential payload version")
    entries = document.get("records")
    if not isinstance(entries, list):
        raise CorruptOrTamperedError("credential payload has no record list")

    records: List[CredentialRecord] = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise CorruptOrTamperedError("credential entry is not an object")
        try:
            record = CredentialRecord.from_dict(entry)
        except InvalidCredentialError as exc:
            raise CorruptOrTamperedError(f"stored credential failed validation: {exc}") from exc
        if record.id in seen:
            raise CorruptOrTamperedError(f"duplicate credential id {record.id}")
        seen.add(record.id)
        records.append(record)
    return records


class EncryptedCredentialStore:
    """Persist the whole credential collection as one encrypted blob.

    ``save`` and ``load`` are serialized by an in-process lock, which also
    guards first-run key creation. Once a key has been obtained it is reused
    for the lifetime of the instance.
    """

    def __init__(
        self,
        preferences: PreferenceStore,
        vault: KeyVault,
        *,
        blob_key: str = DEFAULT_BLOB_KEY,
        service: str = DEFAULT_VAULT_SERVICE,
        account: str = DEFAULT_VAULT_ACCOUNT,
    ):
        self.preferences = preferences
        self.vault = vault
        self.blob_key = blob_key
        self.service = service
        self.account = account
        self._lock = threading.RLock()
        self._key: Optional[bytes] = None

    # ------------------------------------------------------------------
    def save(self, records: Iterable[CredentialRecord]) -> None:
        """Encrypt *records* and replace the stored blob.

        Raises:
            KeyUnavailableError: the vault could not provide a key.
            StorageIOError: the preference store could not be written.
        """
        records = list(records)
        with self._lock:
            key = self._obtain_key(create=True)
            blob = _VERSION_BYTE + crypto.seal(key, encode_records(records), _VERSION_BYTE)
            self.preferences.set(self.blob_key, blob)
        log_event_info(logger, "Credentials saved", event="store.saved", count=len(records))

    def load(self) -> List[CredentialRecord]:
        """Decrypt and return the stored records (``[]`` on first run).

        Raises:
            CorruptOrTamperedError: the blob failed authentication or decoding.
            KeyUnavailableError: data exists but its key cannot be read.
            StorageIOError: the preference store could not be read.
        """
        with self._lock:
            blob = self.preferences.get(self.blob_key)
            if blob is None:
                return []
            key = self._obtain_key(create=False)
            records = self._open(key, blob)
        log_event_info(logger, "Credentials loaded", event="store.loaded", count=len(records))
        return records

    def clear(self) -> None:
        """Remove the stored blob; the vault key is kept."""
        with self._lock:
            self.preferences.delete(self.blob_key)

    # ------------------------------------------------------------------
    def _open(self, key: bytes, blob: bytes) -> List[CredentialRecord]:
        if not blob or blob[:1] != _VERSION_BYTE:
            log_event_error(logger, "Unknown credential blob format", event="store.tampered", exc_info=False)
            raise CorruptOrTamperedError("unknown credential blob format")
        try:
            payload = crypto.open_sealed(key, blob[1:], _VERSION_BYTE)
        except crypto.SealedBoxError as exc:
            log_event_error(logger, "Credential blob failed authentication", event="store.tampered", exc_info=False)
            raise CorruptOrTamperedError("credential blob failed authentication") from exc
        return decode_records(payload)

    def _obtain_key(self, *, create: bool) -> bytes:
        if self._key is not None:
            return self._key
        try:
            key = self.vault.read(self.service, self.account)
            if key is None:
                if not create:
                    raise KeyUnavailableError("encryption key is missing for existing credential data")
                key = self._create_key()
        except VaultError as exc:
            log_event_error(logger, "Vault access failed", event="store.vault.failed", exc_info=False)
            raise KeyUnavailableError(str(exc)) from exc
        self._key = key
        return key

    def _create_key(self) -> bytes:
        candidate = crypto.generate_key()
        try:
            self.vault.add(self.service, self.account, candidate)
        except VaultItemExistsError:
            # another writer won the first-run race; adopt its key
            winner = self.vault.read(self.service, self.account)
            if winner is None:
                raise KeyUnavailableError("vault reported an existing key but returned none")
            log_event_info(logger, "Adopted existing vault key", event="store.key.adopted")
            return winner
        log_event_info(logger, "Created vault key", event="store.key.created")
        return candidate
