"""Option schemas and severity names for the email output.

The host presents the option schemas to operators verbatim, so the order
of each mapping is the order shown on the configuration form.

Severity levels follow RFC 5424 (syslog)
----------------------------------------
0 Emergency   1 Alert   2 Critical   3 Error
4 Warning     5 Notice  6 Informational   7 Debug
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

PLUGIN_NAME = "Email output"

# ---------------------------------------------------------------------------
# Plugin-level options (set once at initialization)
# ---------------------------------------------------------------------------

PLUGIN_CONFIG_FIELDS: Mapping[str, str] = MappingProxyType({
    "from_email": "Email address of sender",
    "from_name": "Name of sender",
    "hostname": "SMTP Hostname",
    "port": "SMTP Port",
    "use_tls": "Use TLS? (true/false)",
    "use_auth": "Use authentication? (true/false)",
    "username": "SMTP username",
    "password": "SMTP password",
    "web_interface_url": "Web Interface URL (for links)",
})

PLUGIN_REQUIRED_FIELDS: tuple[str, ...] = (
    "from_email",
    "from_name",
    "hostname",
    "port",
    "use_tls",
    "use_auth",
)

# Required only when use_auth is exactly "true".
PLUGIN_AUTH_FIELDS: tuple[str, ...] = ("username", "password")

# ---------------------------------------------------------------------------
# Per-destination options (one set per configured stream output)
# ---------------------------------------------------------------------------

STREAM_CONFIG_FIELDS: Mapping[str, str] = MappingProxyType({
    "receiver": "Receiver email address",
    "subject": "Email subject",
    "fields": "Include fields (regex)",
})

STREAM_REQUIRED_FIELDS: tuple[str, ...] = ("receiver", "subject")

# ---------------------------------------------------------------------------
# Severity names
# ---------------------------------------------------------------------------

LEVEL_NAMES: dict[int, str] = {
    0: "Emergency",
    1: "Alert",
    2: "Critical",
    3: "Error",
    4: "Warning",
    5: "Notice",
    6: "Informational",
    7: "Debug",
}

INVALID_LEVEL_NAME = "Invalid"


def level_full_name(level: int) -> str:
    """Return the RFC 5424 name for *level*, or ``"Invalid"`` outside 0-7."""
    return LEVEL_NAMES.get(level, INVALID_LEVEL_NAME)
