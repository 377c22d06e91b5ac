"""Output registry: maps an output name to its ``MessageOutput`` class.

Usage
-----
    from emailoutput.output.registry import get_output

    output = get_output("email")
    output.initialize(plugin_config)
    output.write(messages, stream_configuration)

``get_output()`` returns a fresh, uninitialized instance on every call and
raises ``KeyError`` for names that were never registered.
"""
from __future__ import annotations

from emailoutput.output.base import MessageOutput

_REGISTRY: dict[str, type[MessageOutput]] = {}


def register(name: str, output_cls: type[MessageOutput]) -> None:
    """Register (or replace) an output class under *name*."""
    if not name or not name.strip():
        raise ValueError("output name must be a non-empty string")
    _REGISTRY[name.lower()] = output_cls


def get_output(name: str) -> MessageOutput:
    """Return a new instance of the output registered as *name*."""
    try:
        output_cls = _REGISTRY[name.lower()]
    except KeyError:
        raise KeyError(f"Output not found: {name!r}")
    return output_cls()


def list_outputs() -> list[str]:
    """Return all registered output names, sorted."""
    return sorted(_REGISTRY)


def _register_defaults() -> None:
    from emailoutput.output.email_output import EmailOutput

    register("email", EmailOutput)


_register_defaults()
