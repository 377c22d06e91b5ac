"""Host-owned log message shape consumed by every message output.

Field contract
--------------
id              : unique message identifier, used for permalinks
created_at      : seconds since the epoch, with fractional milliseconds
level           : syslog severity 0-7; other values render as "Invalid"
host            : originating host name
facility        : syslog facility or application name
short_message   : one-line summary, always present
full_message    : full text (e.g. a stack trace); None when not sent
additional_data : free-form extra fields, keyed by field name
streams         : every stream the message was routed into
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Stream:
    """A named routing target; destinations are configured per stream id."""

    id: str
    title: str = ""


@dataclass
class LogMessage:
    """A single log event as handed over by the host."""

    id: str
    created_at: float
    level: int
    host: str
    facility: str
    short_message: str
    full_message: str | None = None
    additional_data: dict[str, Any] = field(default_factory=dict)
    streams: list[Stream] = field(default_factory=list)
