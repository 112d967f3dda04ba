"""RFC 4648 Base32 codec for shared secrets.

Decoding is lenient about formatting: secrets are often copy-pasted in
groups separated by spaces, hyphens or other punctuation, so every character
outside ``A-Z2-7`` (either case) is dropped before the 5-bit groups are
packed.  Trailing bits that do not fill a whole byte are discarded, matching
what authenticator apps accept.
"""
from __future__ import annotations

import base64

from .exceptions import InvalidEncodingError

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_VALUES = {char: index for index, char in enumerate(ALPHABET)}
_VALUES.update({char.lower(): index for char, index in _VALUES.items() if char.isalpha()})


def normalize(text: str) -> str:
    """Upper-case *text* keeping only Base32 alphabet characters."""
    return "".join(ch for ch in text if ch in _VALUES).upper()


def decode(text: str) -> bytes:
    """Decode Base32 *text* into raw bytes.

    Raises:
        InvalidEncodingError: *text* is not a string.
    """
    if not isinstance(text, str):
        raise InvalidEncodingError(f"Base32 input must be text, not {type(text).__name__}")
    buffer = 0
    bits = 0
    out = bytearray()
    for char in text:
        value = _VALUES.get(char)
        if value is None:
            continue
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(out)


def encode(data: bytes) -> str:
    """Encode *data* as padded Base32 text."""
    return base64.b32encode(data).decode("ascii")
