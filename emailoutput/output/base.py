"""Base class shared by every message output.

A message output is driven by the host in two phases:

1. ``initialize(plugin_config)`` once, with the flat plugin configuration.
   Configuration problems must be raised here, before any message is seen.
2. ``write(messages, stream_configuration)`` once per batch, where
   ``stream_configuration`` maps a stream id to the destination mappings
   configured for that stream.

``requested_configuration()`` and ``requested_stream_configuration()``
return ordered ``{option: description}`` mappings that the host shows to
operators.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from emailoutput.output.message import LogMessage

StreamConfiguration = Mapping[str, Iterable[Mapping[str, str]]]


class MessageOutput:
    """Base class for all message outputs.

    Subclasses override every method below; the defaults raise
    NotImplementedError.
    """

    name: str = ""

    def requested_configuration(self) -> Mapping[str, str]:
        raise NotImplementedError(
            f"{type(self).__name__}.requested_configuration() is not implemented"
        )

    def requested_stream_configuration(self) -> Mapping[str, str]:
        raise NotImplementedError(
            f"{type(self).__name__}.requested_stream_configuration() is not implemented"
        )

    def initialize(self, plugin_config: Mapping[str, str]) -> None:
        raise NotImplementedError(
            f"{type(self).__name__}.initialize() is not implemented"
        )

    def write(
        self,
        messages: Sequence[LogMessage],
        stream_configuration: StreamConfiguration,
    ) -> int:
        raise NotImplementedError(
            f"{type(self).__name__}.write() is not implemented"
        )
