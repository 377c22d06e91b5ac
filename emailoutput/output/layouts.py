"""Email layouts: turn one log message into a subject line and a body.

Two layouts are available and one is chosen when the output is initialized:

``html``  : header table (Date, Level, Host, Facility), optional permalink
            into the web interface, the message text, and an optional table
            of additional fields selected by the destination's ``fields``
            regex.  Every interpolated value is HTML-escaped exactly once.
``plain`` : short message, full message, then the full message record.

Both layouts prefix the destination subject with the plugin's
``subject_prefix`` when one is configured.  Rendering never mutates the
message.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Mapping, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from emailoutput.core.constants import level_full_name
from emailoutput.core.errors import ConfigurationError, DestinationError
from emailoutput.output.message import LogMessage
from emailoutput.output.config import PluginConfig

CONTENT_TYPE_HTML = "text/html"
CONTENT_TYPE_PLAIN = "text/plain"

LINK_TEXT = "View in Graylog2"
SEPARATOR = '<hr style="height:1px;border:0px;color:#828181;background-color:#828181;"/>\n'


# ---------------------------------------------------------------------------
# RenderedEmail
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RenderedEmail:
    """Subject, body and MIME type for one (message, destination) pair."""

    subject: str
    body: str
    content_type: str


class EmailLayout(Protocol):
    content_type: str

    def subject(self, message: LogMessage, destination: Mapping[str, str]) -> str: ...

    def body(self, message: LogMessage, destination: Mapping[str, str]) -> str: ...


def render_email(
    layout: EmailLayout,
    message: LogMessage,
    destination: Mapping[str, str],
) -> RenderedEmail:
    """Render *message* for *destination* with *layout*."""
    return RenderedEmail(
        subject=layout.subject(message, destination),
        body=layout.body(message, destination),
        content_type=layout.content_type,
    )


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def prefixed_subject(subject: str, prefix: str | None) -> str:
    """Return *subject* with ``prefix + " "`` in front when *prefix* is set."""
    if prefix:
        return f"{prefix} {subject}"
    return subject


def format_timestamp(created_at: float, tz: tzinfo = timezone.utc) -> str:
    """Format *created_at* as ``YYYY-MM-DDTHH:MM:SS.mmm TZ``.

    Sub-millisecond precision is truncated, not rounded.
    """
    seconds, millis = divmod(int(created_at * 1000), 1000)
    dt = datetime.fromtimestamp(seconds, tz)
    return f"{dt:%Y-%m-%dT%H:%M:%S}.{millis:03d} {dt.tzname()}"


def resolve_timezone(name: str) -> tzinfo:
    """Return the zone for *name*; ``UTC`` needs no tz database."""
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown display timezone {name!r}: {exc}")


def message_text(message: LogMessage) -> str:
    """Prefer the full message; fall back to the short message."""
    if message.full_message is not None:
        return message.full_message
    return message.short_message


def compile_field_pattern(pattern: str | None) -> re.Pattern[str] | None:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise DestinationError(f"Invalid fields pattern {pattern!r}: {exc}")


def select_fields(
    additional_data: Mapping[str, Any],
    pattern: re.Pattern[str] | None,
) -> list[tuple[str, Any]]:
    """Return ``(name, value)`` pairs whose name fully matches, sorted by name."""
    if pattern is None:
        return []
    matched = [
        (name, value)
        for name, value in additional_data.items()
        if pattern.fullmatch(name)
    ]
    return sorted(matched, key=lambda item: item[0])


def _escape(value: object) -> str:
    return html.escape("null" if value is None else str(value), quote=True)


def _html_row(key: str, value: object) -> str:
    return (
        "<tr>\n"
        f'<th align="left">{_escape(key)}</th>\n'
        f"<td>{_escape(value)}</td>\n"
        "</tr>\n"
    )


# ---------------------------------------------------------------------------
# HtmlEmailLayout
# ---------------------------------------------------------------------------

class HtmlEmailLayout:
    """HTML body with header table, permalink and selected fields."""

    content_type = CONTENT_TYPE_HTML

    def __init__(self, plugin_config: PluginConfig, tz: tzinfo = timezone.utc) -> None:
        self.subject_prefix = plugin_config.subject_prefix
        self.web_url = plugin_config.web_interface_url
        self.tz = tz

    def subject(self, message: LogMessage, destination: Mapping[str, str]) -> str:
        return prefixed_subject(destination["subject"], self.subject_prefix)

    def message_url(self, message: LogMessage) -> str | None:
        """Permalink into the web interface, or None when no URL is configured."""
        if not self.web_url:
            return None
        return f"{self.web_url}/messages/{message.id}"

    def body(self, message: LogMessage, destination: Mapping[str, str]) -> str:
        fields = select_fields(
            message.additional_data,
            compile_field_pattern(destination.get("fields")),
        )

        parts = ["<html>\n", "<body>\n", "<table>"]
        parts.append(_html_row("Date", format_timestamp(message.created_at, self.tz)))
        parts.append(_html_row("Level", level_full_name(message.level)))
        parts.append(_html_row("Host", message.host))
        parts.append(_html_row("Facility", message.facility))
        parts.append("</table>")
        parts.append(SEPARATOR)

        url = self.message_url(message)
        if url is not None:
            parts.append(f'<a href="{_escape(url)}">{LINK_TEXT}</a>\n')
            parts.append(SEPARATOR)

        parts.append(f"{_escape(message_text(message))}<br/>\n")
        parts.append(SEPARATOR)

        if fields:
            parts.append("<table>")
            parts.extend(_html_row(name, value) for name, value in fields)
            parts.append("</table>")
            parts.append(SEPARATOR)

        parts.append("</body></html>\n")
        return "".join(parts)


# ---------------------------------------------------------------------------
# PlainTextEmailLayout
# ---------------------------------------------------------------------------

class PlainTextEmailLayout:
    """Plain text body: short message, full message, full message record."""

    content_type = CONTENT_TYPE_PLAIN

    def __init__(self, plugin_config: PluginConfig, tz: tzinfo = timezone.utc) -> None:
        self.subject_prefix = plugin_config.subject_prefix

    def subject(self, message: LogMessage, destination: Mapping[str, str]) -> str:
        return prefixed_subject(destination["subject"], self.subject_prefix)

    def body(self, message: LogMessage, destination: Mapping[str, str]) -> str:
        body = message.short_message
        if message.full_message is not None:
            body += "\n\n" + message.full_message
        return body + "\n\n" + str(message)


_LAYOUTS: dict[str, type] = {
    "html": HtmlEmailLayout,
    "plain": PlainTextEmailLayout,
}


def create_layout(
    name: str,
    plugin_config: PluginConfig,
    tz: tzinfo = timezone.utc,
) -> EmailLayout:
    """Return the layout registered under *name* (``"html"`` or ``"plain"``)."""
    try:
        layout_cls = _LAYOUTS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown email layout {name!r}; expected one of {sorted(_LAYOUTS)!r}"
        )
    return layout_cls(plugin_config, tz)
