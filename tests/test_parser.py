import pytest

from mfa.otp.domain.entities import OTPKind
from mfa.otp.domain.exceptions import (
    InvalidCredentialError,
    InvalidSchemeError,
    InvalidSecretError,
    MissingSecretError,
    ProvisioningURIError,
    UnsupportedKindError,
)
from mfa.otp.domain.hotp import HashAlgorithm
from mfa.otp.domain.parser import format_otpauth_uri, parse_otpauth_uri


def test_parse_full_uri():
    record = parse_otpauth_uri(
        "otpauth://totp/Example:alice@google.com?secret=JBSWY3DPEHPK3PXP&issuer=Example"
    )
    assert record.name == "alice@google.com"
    assert record.issuer == "Example"
    assert record.secret == "JBSWY3DPEHPK3PXP"
    assert record.kind is OTPKind.TOTP
    assert record.algorithm is HashAlgorithm.SHA1
    assert (record.digits, record.period) == (6, 30)


def test_parse_explicit_parameters():
    record = parse_otpauth_uri(
        "otpauth://totp/ACME%20Co:john.doe@email.com?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ"
        "&issuer=ACME%20Co&algorithm=SHA256&digits=8&period=60"
    )
    assert record.issuer == "ACME Co"
    assert record.name == "john.doe@email.com"
    assert record.algorithm is HashAlgorithm.SHA256
    assert (record.digits, record.period) == (8, 60)


def test_parse_hotp_counter():
    record = parse_otpauth_uri("otpauth://hotp/Bank:bob?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ&counter=5")
    assert record.kind is OTPKind.HOTP
    assert record.counter == 5
    assert record.generate_code() == "254676"


def test_scheme_and_kind_are_case_insensitive():
    record = parse_otpauth_uri("OTPAUTH://TOTP/alice?secret=JBSWY3DPEHPK3PXP")
    assert record.kind is OTPKind.TOTP


def test_label_without_issuer():
    record = parse_otpauth_uri("otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP")
    assert (record.issuer, record.name) == ("", "alice")
    record = parse_otpauth_uri("otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&issuer=Corp")
    assert (record.issuer, record.name) == ("Corp", "alice")


def test_label_prefix_wins_over_issuer_param():
    record = parse_otpauth_uri("otpauth://totp/Label:alice?secret=JBSWY3DPEHPK3PXP&issuer=Param")
    assert record.issuer == "Label"


def test_unknown_algorithm_and_garbage_ints_fall_back():
    record = parse_otpauth_uri("otpauth://totp/a?secret=JBSWY3DPEHPK3PXP&algorithm=MD5&digits=x&period=")
    assert record.algorithm is HashAlgorithm.SHA1
    assert (record.digits, record.period) == (6, 30)


def test_missing_secret():
    with pytest.raises(MissingSecretError):
        parse_otpauth_uri("otpauth://totp/Example:alice?issuer=Example")


def test_wrong_scheme():
    with pytest.raises(InvalidSchemeError):
        parse_otpauth_uri("http://totp/Example:alice?secret=JBSWY3DPEHPK3PXP")


def test_unsupported_kind():
    with pytest.raises(UnsupportedKindError) as excinfo:
        parse_otpauth_uri("otpauth://motp/alice?secret=JBSWY3DPEHPK3PXP")
    assert isinstance(excinfo.value, ProvisioningURIError)


def test_invalid_secret():
    with pytest.raises(InvalidSecretError):
        parse_otpauth_uri("otpauth://totp/alice?secret=0189")


def test_out_of_range_digits():
    with pytest.raises(InvalidCredentialError) as excinfo:
        parse_otpauth_uri("otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&digits=12")
    assert excinfo.value.field == "digits"


def test_format_then_parse_keeps_parameters(hotp_record, totp_record):
    for record in (hotp_record, totp_record):
        parsed = parse_otpauth_uri(format_otpauth_uri(record))
        assert parsed.name == record.name
        assert parsed.issuer == record.issuer
        assert parsed.secret == record.secret
        assert parsed.kind is record.kind
        assert parsed.counter == record.counter
        assert parsed.period == record.period


def test_format_escapes_label():
    record = parse_otpauth_uri("otpauth://totp/ACME%20Co:john?secret=JBSWY3DPEHPK3PXP")
    uri = format_otpauth_uri(record)
    assert uri.startswith("otpauth://totp/ACME%20Co:john?secret=JBSWY3DPEHPK3PXP&issuer=ACME%20Co")
    assert "period=30" in uri


def test_name_with_colon_survives_without_issuer():
    record = parse_otpauth_uri("otpauth://totp/:corp:alice?secret=JBSWY3DPEHPK3PXP")
    assert (record.issuer, record.name) == ("", "corp:alice")
    uri = format_otpauth_uri(record)
    assert uri.startswith("otpauth://totp/:corp%3Aalice?")
    parsed = parse_otpauth_uri(uri)
    assert (parsed.issuer, parsed.name) == ("", "corp:alice")


def test_name_with_colon_and_issuer_round_trips(totp_record):
    totp_record.name = "corp:alice"
    parsed = parse_otpauth_uri(format_otpauth_uri(totp_record))
    assert (parsed.issuer, parsed.name) == ("Example", "corp:alice")
