import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mfa.otp.application.manager import CredentialManager  # noqa: E402
from mfa.otp.domain.entities import CredentialRecord  # noqa: E402
from mfa.otp.infrastructure.preferences import InMemoryPreferenceStore  # noqa: E402
from mfa.otp.infrastructure.store import EncryptedCredentialStore  # noqa: E402
from mfa.otp.infrastructure.vault import InMemoryVault  # noqa: E402


RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # b"12345678901234567890"


@pytest.fixture
def preferences():
    return InMemoryPreferenceStore()


@pytest.fixture
def vault():
    return InMemoryVault()


@pytest.fixture
def store(preferences, vault):
    return EncryptedCredentialStore(preferences, vault)


@pytest.fixture
def manager(store):
    return CredentialManager.open(store)


@pytest.fixture
def totp_record():
    return CredentialRecord.create("alice@example.com", "Example", "JBSWY3DPEHPK3PXP")


@pytest.fixture
def hotp_record():
    return CredentialRecord.create("bob", "Bank", RFC_SECRET, kind="hotp", counter=0)
