import base64
import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16


class SealedBoxError(Exception):
    """Raised when a sealed box cannot be opened (bad framing or tag)."""


def generate_key() -> bytes:
    """Return a fresh random AES-256-GCM key."""
    return AESGCM.generate_key(bit_length=KEY_BYTES * 8)


def encode_key(key: bytes) -> str:
    return base64.urlsafe_b64encode(key).decode("ascii")


def decode_key(raw: str) -> bytes:
    """Decode a base64url key string and check its length."""
    raw = raw.strip()
    if raw.startswith("base64:"):
        raw = raw.split(":", 1)[1]
    key = base64.urlsafe_b64decode(raw.encode("ascii"))
    if len(key) != KEY_BYTES:
        raise ValueError("AES-256-GCM key must be 32 bytes")
    return key


def validate_encryption_key(raw: Optional[str]) -> Tuple[bool, str]:
    """Validate a vault key string.

    Accepts ``"<b64>"`` or ``"base64:<b64>"`` where the decoded length is 32
    bytes. Returns ``(ok, why)`` so callers can report why a key was rejected.
    """

    if not raw:
        return False, "not set"

    b64 = raw.split(":", 1)[1] if raw.startswith("base64:") else raw
    try:
        key = base64.urlsafe_b64decode(b64)
    except ValueError as exc:
        return False, f"base64 decode failed: {exc}"
    if len(key) == KEY_BYTES:
        return True, "base64(32bytes)"
    return False, f"invalid base64 length: {len(key)} bytes (32 required)"


def seal(key: bytes, plaintext: bytes, associated_data: Optional[bytes] = None) -> bytes:
    """Encrypt *plaintext* with AES-256-GCM.

    Returns nonce + ciphertext + tag. A fresh random nonce is drawn for every
    call.
    """
    aesgcm = AESGCM(key)
    nonce = os.urandom(NONCE_BYTES)
    ct = aesgcm.encrypt(nonce, plaintext, associated_data)
    return nonce + ct


def open_sealed(key: bytes, sealed: bytes, associated_data: Optional[bytes] = None) -> bytes:
    """Decrypt nonce + ciphertext + tag produced by :func:`seal`."""
    if len(sealed) < NONCE_BYTES + TAG_BYTES:
        raise SealedBoxError("sealed box is truncated")
    nonce, ct = sealed[:NONCE_BYTES], sealed[NONCE_BYTES:]
    aesgcm = AESGCM(key)
    try:
        return aesgcm.decrypt(nonce, ct, associated_data)
    except InvalidTag as exc:
        raise SealedBoxError("authentication tag mismatch") from exc
