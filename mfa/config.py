from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import keyring
from dotenv import load_dotenv
from keyring.backends import fail

from mfa.otp.infrastructure.store import (
    DEFAULT_BLOB_KEY,
    DEFAULT_VAULT_ACCOUNT,
    DEFAULT_VAULT_SERVICE,
)

# Load .env at import time so the CLI and tests pick it up
load_dotenv()


# ---------------------------------------------------------------------------
# helpers


def _mask(val: str, keep: int = 4) -> str:
    if val is None:
        return ""
    if len(val) <= keep * 2:
        return "*" * len(val)
    return f"{val[:keep]}***{val[-keep:]}"


def _read_bool(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def default_db_url() -> str:
    return f"sqlite:///{Path.home() / '.mfa' / 'preferences.db'}"


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class MFAConfig:
    db_url: str
    vault_service: str
    vault_account: str
    blob_key: str
    log_level: str
    strict_vault: bool

    # ------------------------------------------------------------------
    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> "MFAConfig":
        env = os.environ if env is None else env

        return MFAConfig(
            db_url=(env.get("MFA_DB_URL") or "").strip() or default_db_url(),
            vault_service=(env.get("MFA_VAULT_SERVICE") or "").strip() or DEFAULT_VAULT_SERVICE,
            vault_account=(env.get("MFA_VAULT_ACCOUNT") or "").strip() or DEFAULT_VAULT_ACCOUNT,
            blob_key=(env.get("MFA_BLOB_KEY") or "").strip() or DEFAULT_BLOB_KEY,
            log_level=(env.get("MFA_LOG_LEVEL") or "WARNING").strip().upper(),
            strict_vault=_read_bool(env, "MFA_STRICT_VAULT", False),
        )

    # ------------------------------------------------------------------
    def validate(self) -> Tuple[List[str], List[str]]:
        """Returns ``(warnings, errors)``"""
        warns: List[str] = []
        errs: List[str] = []

        if not self.db_url.startswith("sqlite"):
            warns.append("MFA_DB_URL: a local sqlite database is recommended for a desktop install")
        if self.log_level not in _LOG_LEVELS:
            errs.append(f"MFA_LOG_LEVEL: unknown level {self.log_level}")

        if self.strict_vault:
            backend = keyring.get_keyring()
            if isinstance(backend, fail.Keyring):
                errs.append("MFA_STRICT_VAULT: no usable keyring backend is available")

        return warns, errs

    @property
    def logging_level(self) -> int:
        if self.log_level in _LOG_LEVELS:
            return getattr(logging, self.log_level)
        return logging.WARNING

    # ------------------------------------------------------------------
    def masked(self) -> Dict[str, Any]:
        return {
            "db_url": self.db_url,
            "vault_service": self.vault_service,
            "vault_account": _mask(self.vault_account),
            "blob_key": self.blob_key,
            "log_level": self.log_level,
            "strict_vault": self.strict_vault,
        }
