"""User-facing app settings kept in the preference store.

Each setting is stored under its own ``settings.<name>`` key as a JSON
value. Missing or malformed values read back as the default.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Callable, Dict

from mfa.otp.infrastructure.preferences import PreferenceStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "settings."


@dataclass(slots=True)
class AppSettings:
    auto_lock_timeout: int = 5  # minutes, 0 disables
    use_touch_id: bool = False
    show_in_menu_bar: bool = True
    launch_at_login: bool = True
    copy_timeout: int = 10  # seconds before the clipboard is cleared
    dark_mode: bool = False


_DEFAULTS = AppSettings()


def _coerce(name: str, value: Any) -> Any:
    default = getattr(_DEFAULTS, name)
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise TypeError(f"{name} must be a boolean")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TypeError(f"{name} must be a non-negative integer")
    return value


def load_settings(store: PreferenceStore) -> AppSettings:
    values: Dict[str, Any] = {}
    for f in fields(AppSettings):
        raw = store.get(KEY_PREFIX + f.name)
        if raw is None:
            continue
        try:
            values[f.name] = _coerce(f.name, json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, ValueError, TypeError):
            logger.warning(
                "Ignoring malformed setting",
                extra={"event": "settings.malformed", "setting": f.name},
            )
    return AppSettings(**values)


def save_settings(store: PreferenceStore, settings: AppSettings) -> None:
    for name, value in asdict(settings).items():
        store.set(KEY_PREFIX + name, json.dumps(_coerce(name, value)).encode("utf-8"))


def update_setting(store: PreferenceStore, name: str, raw: str) -> AppSettings:
    """Parse *raw* text for setting *name* and persist it."""
    if name not in AppSettings.__dataclass_fields__:
        raise KeyError(name)
    settings = load_settings(store)
    default = getattr(_DEFAULTS, name)
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered not in {"1", "true", "yes", "on", "0", "false", "no", "off"}:
            raise ValueError(f"{name} expects a boolean")
        value: Any = lowered in {"1", "true", "yes", "on"}
    else:
        value = int(raw)
    setattr(settings, name, _coerce(name, value))
    save_settings(store, settings)
    return settings


def reset_settings(store: PreferenceStore) -> AppSettings:
    for f in fields(AppSettings):
        store.delete(KEY_PREFIX + f.name)
    return AppSettings()


def unlock(settings: AppSettings, prompt: Callable[[], bool]) -> bool:
    """Gate access to the credentials behind the biometric prompt.

    The prompt is only consulted when ``use_touch_id`` is enabled.
    """
    if not settings.use_touch_id:
        return True
    return bool(prompt())
