"""Plugin and destination configuration checks.

Both the plugin configuration and every per-stream destination arrive from
the host as flat string-to-string mappings.  A value counts as set only when
the key is present and the value is neither ``None`` nor the empty string;
whitespace is not trimmed.  Checks stop at the first missing option so the
error always names exactly one field.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Mapping

from emailoutput.core.constants import (
    PLUGIN_AUTH_FIELDS,
    PLUGIN_REQUIRED_FIELDS,
    STREAM_REQUIRED_FIELDS,
)
from emailoutput.core.errors import ConfigurationError, DestinationError, EmailOutputError


@dataclass(frozen=True)
class PluginConfig:
    """Validated, typed plugin configuration.  Built once per initialization."""

    from_email: str
    from_name: str
    hostname: str
    port: int
    use_tls: bool
    use_auth: bool
    username: str | None = None
    password: str | None = None
    subject_prefix: str | None = None
    web_interface_url: str | None = None


def is_config_set(config: Mapping[str, str | None] | None, key: str) -> bool:
    """Return True if *key* is present in *config* with a non-empty value."""
    if config is None or key not in config:
        return False
    value = config[key]
    return value is not None and value != ""


def _check_required_fields(
    config: Mapping[str, str | None] | None,
    required: Collection[str],
    error_cls: type[EmailOutputError],
) -> None:
    for key in required:
        if not is_config_set(config, key):
            raise error_cls(f"Missing configuration option: {key}")


def validate_plugin_config(config: Mapping[str, str | None] | None) -> None:
    """Raise ``ConfigurationError`` naming the first missing plugin option.

    ``username`` and ``password`` become required only when ``use_auth`` is
    the literal string ``"true"``.
    """
    _check_required_fields(config, PLUGIN_REQUIRED_FIELDS, ConfigurationError)
    if config["use_auth"] == "true":
        _check_required_fields(config, PLUGIN_AUTH_FIELDS, ConfigurationError)


def validate_destination_config(config: Mapping[str, str | None] | None) -> None:
    """Raise ``DestinationError`` naming the first missing destination option."""
    _check_required_fields(config, STREAM_REQUIRED_FIELDS, DestinationError)


def parse_bool(value: str | None) -> bool:
    """Only the exact string ``"true"`` is true; everything else is false."""
    return value == "true"


def parse_port(value: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid port: {value!r} is not a number")
    if not 0 < port < 65536:
        raise ConfigurationError(f"Invalid port: {port} is out of range")
    return port


def parse_plugin_config(config: Mapping[str, str | None] | None) -> PluginConfig:
    """Validate *config* and convert it into a ``PluginConfig``."""
    validate_plugin_config(config)
    return PluginConfig(
        from_email=config["from_email"],
        from_name=config["from_name"],
        hostname=config["hostname"],
        port=parse_port(config["port"]),
        use_tls=parse_bool(config["use_tls"]),
        use_auth=parse_bool(config["use_auth"]),
        username=config.get("username") or None,
        password=config.get("password") or None,
        subject_prefix=config.get("subject_prefix") or None,
        web_interface_url=config.get("web_interface_url") or None,
    )
