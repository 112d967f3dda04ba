"""MFA one-time passcode and credential engine."""

__version__ = "0.1.0"
