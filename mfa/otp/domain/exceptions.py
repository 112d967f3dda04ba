"""OTP engine domain exceptions."""

from __future__ import annotations


class OTPError(Exception):
    """Base class for OTP engine errors."""


class InvalidEncodingError(OTPError):
    """Text contains a character that is not Base32."""

    def __init__(self, message: str, character: str | None = None):
        super().__init__(message)
        self.character = character


class InvalidCredentialError(OTPError):
    """A credential field failed validation."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidSecretError(InvalidCredentialError):
    """The shared secret is empty or cannot drive code generation."""

    def __init__(self, message: str = "secret is empty or invalid"):
        super().__init__(message, field="secret")


class UnsupportedAlgorithmError(OTPError):
    """The HMAC hash algorithm tag is not one of SHA1, SHA256, SHA512."""

    def __init__(self, algorithm: object):
        super().__init__(f"unsupported algorithm: {algorithm!r}")
        self.algorithm = algorithm


class ProvisioningURIError(OTPError):
    """An ``otpauth://`` URI is malformed."""


class InvalidSchemeError(ProvisioningURIError):
    def __init__(self, scheme: str):
        super().__init__(f"not an otpauth URI (scheme {scheme!r})")
        self.scheme = scheme


class UnsupportedKindError(ProvisioningURIError):
    def __init__(self, kind: str):
        super().__init__(f"unsupported OTP kind: {kind!r}")
        self.kind = kind


class MissingSecretError(ProvisioningURIError):
    def __init__(self):
        super().__init__("otpauth URI has no secret parameter")


class CredentialNotFoundError(OTPError):
    """No record with the given id exists in the collection."""

    def __init__(self, credential_id: str):
        super().__init__(f"credential {credential_id} not found")
        self.credential_id = credential_id


class DuplicateCredentialError(OTPError):
    """A record with the same id is already in the collection."""

    def __init__(self, credential_id: str):
        super().__init__(f"duplicate credential id {credential_id}")
        self.credential_id = credential_id


class StorageError(OTPError):
    """Persisting or restoring the credential collection failed."""


class KeyUnavailableError(StorageError):
    """The encryption key could not be read from or written to the vault."""


class CorruptOrTamperedError(StorageError):
    """The persisted blob failed authentication or could not be decoded."""


class StorageIOError(StorageError):
    """The preference store could not be read or written."""
