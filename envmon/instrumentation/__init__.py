"""Serial transport and wire-protocol decoding for the sensor."""

from .decoder import DecoderOverflowError, LineDecoder, parse_value
from .serial_link import (
    BAUD_RATES,
    POLL_TIMEOUT_S,
    LinkState,
    SerialLink,
    SerialLinkError,
    port_candidates,
)

__all__ = [
    "BAUD_RATES",
    "DecoderOverflowError",
    "LineDecoder",
    "LinkState",
    "POLL_TIMEOUT_S",
    "SerialLink",
    "SerialLinkError",
    "parse_value",
    "port_candidates",
]
