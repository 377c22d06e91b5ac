"""SMTP delivery for rendered emails.

One ``smtplib.SMTP`` connection is opened per batch and reused for every
email in it; the caller owns closing it.  There is no retry and no backoff:
a transport failure surfaces as ``DeliveryError`` carrying the server's own
diagnostic text.

STARTTLS is only negotiated when authentication is enabled.  With
``use_auth=false`` the ``use_tls`` setting has no effect.

Safety: receiver addresses and credentials are never logged.
"""
from __future__ import annotations

import logging
import smtplib
from email.errors import HeaderParseError, InvalidHeaderDefect
from email.headerregistry import Address, HeaderRegistry
from email.message import EmailMessage

from emailoutput.core.errors import ConfigurationError, DeliveryError, DestinationError
from emailoutput.output.config import PluginConfig
from emailoutput.output.layouts import CONTENT_TYPE_HTML, RenderedEmail

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

_HEADERS = HeaderRegistry()


def _parse_mailbox(value: str) -> Address:
    """Parse exactly one RFC 5322 mailbox, with or without a display name."""
    header = _HEADERS("To", value)
    invalid = [d for d in header.defects if isinstance(d, InvalidHeaderDefect)]
    if invalid:
        raise ValueError(str(invalid[0]))
    if len(header.addresses) != 1:
        raise ValueError(f"expected one mailbox, found {len(header.addresses)}")
    address = header.addresses[0]
    if not address.username or not address.domain:
        raise ValueError("address must have a local part and a domain")
    return address


def parse_address(email: str, name: str | None = None) -> Address:
    """Parse the sender *email* and attach the display *name*.

    *email* may carry its own display name (``"Graylog <g@example.com>"``);
    a non-empty *name* replaces it.  Raises ``ConfigurationError`` when the
    address cannot be parsed or the name cannot be encoded for a mail header.
    """
    try:
        address = _parse_mailbox(email)
    except (ValueError, HeaderParseError, IndexError) as exc:
        raise ConfigurationError(f"Could not parse email address: {email}; {exc}")

    if not name:
        return address
    try:
        name.encode("utf-8")
    except UnicodeError as exc:
        raise ConfigurationError(f"Could not encode name: {name}; {exc}")
    return Address(display_name=name, username=address.username, domain=address.domain)


def parse_receiver(email: str) -> Address:
    """Parse a destination mailbox, keeping any display name.

    Failures only affect that destination.
    """
    try:
        return _parse_mailbox(email)
    except (ValueError, HeaderParseError, IndexError) as exc:
        raise DestinationError(f"Could not parse email address: {email}; {exc}")


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------

def open_transport(config: PluginConfig, timeout: float = 30.0) -> smtplib.SMTP:
    """Connect to the configured SMTP server and authenticate if enabled."""
    try:
        transport = smtplib.SMTP(config.hostname, config.port, timeout=timeout)
    except (smtplib.SMTPException, OSError) as exc:
        raise DeliveryError(
            f"Could not connect to SMTP server {config.hostname}:{config.port}: {exc}"
        ) from exc

    try:
        transport.ehlo()
        if config.use_auth:
            if config.use_tls:
                transport.starttls()
                transport.ehlo()
            transport.login(config.username, config.password)
    except (smtplib.SMTPException, OSError) as exc:
        close_transport(transport)
        raise DeliveryError(
            f"SMTP session setup failed on {config.hostname}:{config.port}: {exc}"
        ) from exc

    logger.info(
        "Opened SMTP transport to %s:%d (auth=%s, tls=%s)",
        config.hostname, config.port, config.use_auth, config.use_auth and config.use_tls,
    )
    return transport


def close_transport(transport: smtplib.SMTP) -> None:
    """Say QUIT if the session is still alive; always drop the socket."""
    try:
        transport.quit()
    except (smtplib.SMTPException, OSError) as exc:
        logger.debug("SMTP QUIT failed, closing socket: %s", exc)
        transport.close()


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------

def build_message(sender: Address, receiver: Address, rendered: RenderedEmail) -> EmailMessage:
    """Assemble a MIME message with the rendered content type.

    Raises ``DestinationError`` when a header value is rejected, e.g. a
    subject containing a line break.
    """
    msg = EmailMessage()
    subtype = "html" if rendered.content_type == CONTENT_TYPE_HTML else "plain"
    try:
        msg["From"] = sender
        msg["To"] = receiver
        msg["Subject"] = rendered.subject
        msg.set_content(rendered.body, subtype=subtype)
    except ValueError as exc:
        raise DestinationError(f"Could not build email: {exc}")
    return msg


def send_email(transport: smtplib.SMTP, msg: EmailMessage) -> None:
    """Send one prepared message over an open *transport*."""
    try:
        transport.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise DeliveryError(f"SMTP delivery failed: {exc}") from exc
