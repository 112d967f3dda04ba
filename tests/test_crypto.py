import base64
import os

import pytest

from mfa.core import crypto


def _gen_key() -> str:
    return base64.urlsafe_b64encode(os.urandom(32)).decode()


def test_validate_encryption_key_valid():
    key = _gen_key()
    ok, msg = crypto.validate_encryption_key(key)
    assert ok is True
    assert msg == "base64(32bytes)"
    assert crypto.validate_encryption_key(f"base64:{key}")[0] is True


def test_validate_encryption_key_invalid_length():
    bad_key = base64.urlsafe_b64encode(b'123').decode()
    ok, msg = crypto.validate_encryption_key(bad_key)
    assert ok is False
    assert "invalid base64 length" in msg
    assert crypto.validate_encryption_key("") == (False, "not set")


def test_key_text_round_trip():
    key = crypto.generate_key()
    assert len(key) == crypto.KEY_BYTES
    assert crypto.decode_key(crypto.encode_key(key)) == key
    assert crypto.decode_key("base64:" + crypto.encode_key(key)) == key
    with pytest.raises(ValueError):
        crypto.decode_key(base64.urlsafe_b64encode(b"short").decode())


def test_seal_open_round_trip():
    key = crypto.generate_key()
    sealed = crypto.seal(key, b"secret", b"aad")
    assert len(sealed) == crypto.NONCE_BYTES + len(b"secret") + crypto.TAG_BYTES
    assert crypto.open_sealed(key, sealed, b"aad") == b"secret"


def test_open_rejects_wrong_aad_key_and_truncation():
    key = crypto.generate_key()
    sealed = crypto.seal(key, b"secret", b"aad")
    with pytest.raises(crypto.SealedBoxError):
        crypto.open_sealed(key, sealed, b"other")
    with pytest.raises(crypto.SealedBoxError):
        crypto.open_sealed(crypto.generate_key(), sealed, b"aad")
    with pytest.raises(crypto.SealedBoxError):
        crypto.open_sealed(key, sealed[:10], b"aad")
