"""HTTP gateway over a collateralized-debt-position vault contract."""

from .codec import WideInteger, combine, decode, encode, parse_amount, split
from .exceptions import (
    ConfigurationError,
    GatewayError,
    InternalError,
    Reverted,
    TimedOut,
    UpstreamUnavailable,
    ValidationError,
)
from .gateway import CdpGateway

__version__ = "0.1.0"

__all__ = [
    "CdpGateway",
    # Codec
    "WideInteger",
    "encode",
    "decode",
    "split",
    "combine",
    "parse_amount",
    # Exceptions
    "GatewayError",
    "ValidationError",
    "UpstreamUnavailable",
    "Reverted",
    "TimedOut",
    "InternalError",
    "ConfigurationError",
]
