"""Log redaction for router credentials, CSRF tokens and session cookies."""

from __future__ import annotations

import logging
import re

REDACTED = "[REDACTED]"

_REDACTION_RULES = (
    (
        re.compile(r"(?i)(\bX-CSRF-TOKEN\b['\"]?\s*[:=]\s*['\"]?)([^'\",\s}]+)"),
        rf"\1{REDACTED}",
    ),
    (
        re.compile(
            r"(?i)(['\"]?(?:UNIFI_PASSWORD|UNIFI_MFA_SECRET|ubic_2fa_token|PASSWORD|SECRET|CSRF_TOKEN|X_CSRF_TOKEN|TOKEN|unifises)['\"]?\s*[:=]\s*['\"]?)([^'\",&;\s}]+)"
        ),
        rf"\1{REDACTED}",
    ),
    (
        re.compile(r"(?i)(\bCookie\b['\"]?\s*[:=]\s*['\"]?)([^'\"\n}]+)"),
        rf"\1{REDACTED}",
    ),
    (
        re.compile(r"(?i)(https?://[^/\s:@]+:)([^@\s/]+)(@)"),
        rf"\1{REDACTED}\3",
    ),
)


def redact_text(value: str) -> str:
    """Redact likely secret values in an arbitrary text block."""
    if not value:
        return value

    redacted = value
    for pattern, replacement in _REDACTION_RULES:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class SensitiveDataFormatter(logging.Formatter):
    """Formatter that redacts sensitive values from rendered log output."""

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        return redact_text(rendered)
