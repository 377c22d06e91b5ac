"""Exception hierarchy for the email output.

Three failure classes, each with a different blast radius
---------------------------------------------------------
ConfigurationError : plugin settings are missing or malformed; the output
                     cannot be used at all until re-initialized
DestinationError   : one (message, destination) pair cannot be delivered;
                     the surrounding batch loop decides what happens next
DeliveryError      : the SMTP server or connection failed; carries the
                     transport's own diagnostic text
"""
from __future__ import annotations


class EmailOutputError(Exception):
    """Base class for every error raised by the email output."""


class ConfigurationError(EmailOutputError):
    """Plugin configuration is missing a required option or holds a bad value.

    The message always names the offending option, e.g.
    ``"Missing configuration option: hostname"``.
    """


class DestinationError(EmailOutputError, ValueError):
    """A per-stream destination cannot be rendered or addressed."""


class DeliveryError(EmailOutputError):
    """The SMTP transport refused the connection, login or message."""


__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "DestinationError",
    "EmailOutputError",
]
