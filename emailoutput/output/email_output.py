"""Email message output.

Sends one email per (message, destination) pair.  Destinations are looked
up per stream: a message routed into two streams, each with one configured
destination, produces two emails.

A batch shares a single SMTP connection.  It is opened lazily, right before
the first email that rendered, addressed and assembled cleanly, and closed when
``write()`` returns or raises.  Errors are not swallowed; the host decides
whether a failing destination stops the rest of its loop.

Safety: receiver addresses and credentials are never logged, only message ids.
"""
from __future__ import annotations

import logging
import smtplib
from email.headerregistry import Address
from typing import Mapping, Sequence

from emailoutput.core.constants import (
    PLUGIN_CONFIG_FIELDS,
    PLUGIN_NAME,
    STREAM_CONFIG_FIELDS,
)
from emailoutput.core.errors import EmailOutputError
from emailoutput.core.settings import get_settings
from emailoutput.output.base import MessageOutput, StreamConfiguration
from emailoutput.output.config import (
    PluginConfig,
    parse_plugin_config,
    validate_destination_config,
)
from emailoutput.output.layouts import (
    EmailLayout,
    create_layout,
    render_email,
    resolve_timezone,
)
from emailoutput.output.message import LogMessage
from emailoutput.output.transport import (
    build_message,
    close_transport,
    open_transport,
    parse_address,
    parse_receiver,
    send_email,
)

logger = logging.getLogger(__name__)


class EmailOutput(MessageOutput):
    """Render log messages as email and deliver them over SMTP.

    Parameters
    ----------
    layout:
        ``"html"`` or ``"plain"``.  Defaults to ``settings.layout``.
    display_timezone:
        IANA zone used for the Date row.  Defaults to
        ``settings.display_timezone``.
    smtp_timeout:
        Socket timeout in seconds.  Defaults to ``settings.smtp_timeout``.
    """

    name = PLUGIN_NAME

    def __init__(
        self,
        *,
        layout: str | None = None,
        display_timezone: str | None = None,
        smtp_timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.layout_name = layout or settings.layout
        self.display_timezone = display_timezone or settings.display_timezone
        self.smtp_timeout = smtp_timeout if smtp_timeout is not None else settings.smtp_timeout

        self.config: PluginConfig | None = None
        self.layout: EmailLayout | None = None
        self._sender: Address | None = None

    # -- schemas ------------------------------------------------------------

    def requested_configuration(self) -> Mapping[str, str]:
        return PLUGIN_CONFIG_FIELDS

    def requested_stream_configuration(self) -> Mapping[str, str]:
        return STREAM_CONFIG_FIELDS

    # -- lifecycle ----------------------------------------------------------

    def initialize(self, plugin_config: Mapping[str, str]) -> None:
        """Validate *plugin_config*, parse the sender, and pick the layout.

        Raises ``ConfigurationError`` naming the offending option.  On
        failure the output keeps its previous state.
        """
        config = parse_plugin_config(plugin_config)
        sender = parse_address(config.from_email, config.from_name)
        tz = resolve_timezone(self.display_timezone)
        layout = create_layout(self.layout_name, config, tz)

        self.config = config
        self._sender = sender
        self.layout = layout
        logger.info(
            "%s initialized (smtp=%s:%d, layout=%s)",
            self.name, config.hostname, config.port, self.layout_name,
        )

    @property
    def initialized(self) -> bool:
        return self.config is not None

    # -- delivery -----------------------------------------------------------

    def write(
        self,
        messages: Sequence[LogMessage],
        stream_configuration: StreamConfiguration,
    ) -> int:
        """Send every (message, destination) pair; return the number sent."""
        if not self.initialized:
            raise RuntimeError(f"{self.name} used before initialize()")

        transport: smtplib.SMTP | None = None
        sent = 0
        try:
            for message in messages:
                for stream in message.streams:
                    destinations = stream_configuration.get(stream.id)
                    if not destinations:
                        continue
                    for destination in destinations:
                        try:
                            transport = self.send_message(transport, message, destination)
                        except EmailOutputError as exc:
                            logger.warning(
                                "Email for message %s on stream %s failed: %s",
                                message.id, stream.id, type(exc).__name__,
                            )
                            raise
                        sent += 1
        finally:
            if transport is not None:
                close_transport(transport)

        logger.info("Sent %d email(s) for %d message(s)", sent, len(messages))
        return sent

    def send_message(
        self,
        transport: smtplib.SMTP | None,
        message: LogMessage,
        destination: Mapping[str, str],
    ) -> smtplib.SMTP:
        """Deliver *message* to one *destination* and return the transport.

        A new transport is opened when *transport* is None.  If that new
        transport cannot be used it is closed before the error propagates.
        """
        validate_destination_config(destination)
        rendered = render_email(self.layout, message, destination)
        receiver = parse_receiver(destination["receiver"])
        msg = build_message(self._sender, receiver, rendered)

        opened = transport is None
        if opened:
            transport = open_transport(self.config, timeout=self.smtp_timeout)
        try:
            send_email(transport, msg)
        except Exception:
            if opened:
                close_transport(transport)
            raise

        logger.debug("Sent email for message %s (%s)", message.id, rendered.content_type)
        return transport
