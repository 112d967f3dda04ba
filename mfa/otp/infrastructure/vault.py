"""Secure key vault adapters.

A vault holds the store's symmetric key under a fixed ``(service, account)``
identifier, outside the encrypted blob.  Platform keyrings only hold text,
so :class:`KeyringVault` keeps the key base64url-encoded.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Protocol, Tuple

import keyring
from keyring.errors import KeyringError

from mfa.core.crypto import decode_key, encode_key, validate_encryption_key


class VaultError(Exception):
    """The vault could not be read or written."""


class VaultItemExistsError(VaultError):
    """An item already exists under the requested identifier."""


class KeyVault(Protocol):
    def read(self, service: str, account: str) -> Optional[bytes]:
        ...

    def add(self, service: str, account: str, key: bytes) -> None:
        """Store *key*; raise :class:`VaultItemExistsError` if one is present."""
        ...


class InMemoryVault:
    def __init__(self):
        self._items: Dict[Tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def read(self, service: str, account: str) -> Optional[bytes]:
        with self._lock:
            return self._items.get((service, account))

    def add(self, service: str, account: str, key: bytes) -> None:
        with self._lock:
            if (service, account) in self._items:
                raise VaultItemExistsError(f"{service}/{account} already exists")
            self._items[(service, account)] = bytes(key)


class KeyringVault:
    """Vault backed by the ``keyring`` library (Keychain, Secret Service, ...)."""

    def read(self, service: str, account: str) -> Optional[bytes]:
        try:
            raw = keyring.get_password(service, account)
        except KeyringError as exc:
            raise VaultError(f"keyring read failed: {exc}") from exc
        if raw is None:
            return None
        ok, why = validate_encryption_key(raw)
        if not ok:
            raise VaultError(f"keyring item is not a usable key: {why}")
        return decode_key(raw)

    def add(self, service: str, account: str, key: bytes) -> None:
        try:
            if keyring.get_password(service, account) is not None:
                raise VaultItemExistsError(f"{service}/{account} already exists")
            keyring.set_password(service, account, encode_key(key))
        except KeyringError as exc:
            raise VaultError(f"keyring write failed: {exc}") from exc
