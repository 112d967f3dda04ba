from datetime import datetime, timezone

import pytest

from mfa.otp.domain.entities import CredentialRecord, OTPKind
from mfa.otp.domain.exceptions import InvalidCredentialError, InvalidSecretError
from mfa.otp.domain.hotp import HashAlgorithm, compute_hotp


def test_create_applies_defaults_and_normalizes():
    record = CredentialRecord.create(" alice ", " Example ", "jbsw y3dp ehpk 3pxp")
    assert record.name == "alice"
    assert record.issuer == "Example"
    assert record.secret == "JBSWY3DPEHPK3PXP"
    assert record.algorithm is HashAlgorithm.SHA1
    assert record.kind is OTPKind.TOTP
    assert (record.digits, record.period, record.counter) == (6, 30, 0)
    assert record.id
    assert record.created_at.tzinfo is not None


def test_ids_are_unique():
    a = CredentialRecord.create("a", "i", "JBSWY3DPEHPK3PXP")
    b = CredentialRecord.create("a", "i", "JBSWY3DPEHPK3PXP")
    assert a.id != b.id


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"name": ""}, "name"),
        ({"name": "   "}, "name"),
        ({"issuer": ""}, "issuer"),
        ({"secret": ""}, "secret"),
        ({"secret": "0189 !"}, "secret"),
        ({"secret": "A"}, "secret"),
        ({"algorithm": "MD5"}, "algorithm"),
        ({"kind": "motp"}, "kind"),
        ({"digits": 5}, "digits"),
        ({"digits": 9}, "digits"),
        ({"digits": True}, "digits"),
        ({"period": 0}, "period"),
        ({"counter": -1}, "counter"),
        ({"counter": 2**64}, "counter"),
    ],
)
def test_create_rejects_invalid_fields(kwargs, field):
    args = {"name": "alice", "issuer": "Example", "secret": "JBSWY3DPEHPK3PXP"}
    args.update(kwargs)
    name, issuer, secret = args.pop("name"), args.pop("issuer"), args.pop("secret")
    with pytest.raises(InvalidCredentialError) as excinfo:
        CredentialRecord.create(name, issuer, secret, **args)
    assert excinfo.value.field == field


def test_secret_error_type():
    with pytest.raises(InvalidSecretError):
        CredentialRecord.create("alice", "Example", "1111")


def test_issuer_optional_when_not_required():
    record = CredentialRecord.create("alice", "", "JBSWY3DPEHPK3PXP", require_issuer=False)
    assert record.issuer == ""


def test_hotp_generate_does_not_advance(hotp_record):
    first = hotp_record.generate_code()
    assert hotp_record.generate_code() == first
    assert hotp_record.counter == 0
    assert first == compute_hotp(b"12345678901234567890", 0)
    assert hotp_record.is_counter_based
    assert hotp_record.seconds_remaining() is None


def test_totp_generate_and_remaining(totp_record):
    assert totp_record.generate_code(59) == totp_record.generate_code(30)
    assert totp_record.seconds_remaining(59) == 1
    assert not totp_record.is_counter_based


def test_dict_round_trip_preserves_fields(hotp_record):
    hotp_record.counter = 7
    hotp_record.icon_name = "bank"
    hotp_record.created_at = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    data = hotp_record.to_dict()
    assert data["created_at"] == "2024-01-02T03:04:05Z"
    assert list(data) == [
        "id", "name", "issuer", "secret", "algorithm", "digits", "period", "kind", "counter", "icon_name", "created_at",
    ]
    assert CredentialRecord.from_dict(data) == hotp_record


def test_from_dict_requires_id():
    with pytest.raises(InvalidCredentialError):
        CredentialRecord.from_dict({"name": "a", "secret": "JBSWY3DPEHPK3PXP"})
