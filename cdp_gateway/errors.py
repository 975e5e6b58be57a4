"""Normalise heterogeneous failures into the gateway error taxonomy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager

import aiohttp
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3RPCError,
)

from .exceptions import (
    GatewayError,
    InternalError,
    Reverted,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

DEFAULT_REVERT_REASON = "execution reverted"

_UNREACHABLE = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ConnectionError,
    OSError,
    ProviderConnectionError,
    TimeExhausted,
)


def revert_reason(exc: ContractLogicError) -> str:
    """Return the node's revert message as given."""
    message = getattr(exc, "message", None) or str(exc)
    return message or DEFAULT_REVERT_REASON


def classify(exc: BaseException, *, endpoint: str | None = None) -> GatewayError:
    if isinstance(exc, GatewayError):
        return exc
    if isinstance(exc, ContractLogicError):
        return Reverted(revert_reason(exc))
    if isinstance(exc, BadFunctionCallOutput):
        return UpstreamUnavailable(
            "Contract returned no data; interface mismatch or no contract deployed",
            endpoint=endpoint,
            details={"error": str(exc)},
        )
    if isinstance(exc, Web3RPCError):
        return UpstreamUnavailable(
            f"Ledger node rejected the request: {exc}",
            endpoint=endpoint,
            details={"error": str(exc)},
        )
    if isinstance(exc, _UNREACHABLE):
        return UpstreamUnavailable(
            "Could not reach the ledger node",
            endpoint=endpoint,
            details={"error": str(exc) or type(exc).__name__},
        )
    return InternalError("Internal error", details={"error": repr(exc)})


@contextmanager
def classified(action: str, *, endpoint: str | None = None) -> Iterator[None]:
    """Re-raise anything escaping the block as a GatewayError."""
    try:
        yield
    except GatewayError:
        raise
    except Exception as exc:
        error = classify(exc, endpoint=endpoint)
        logger.debug("Classified failure during %s as %s: %r", action, type(error).__name__, exc)
        raise error from exc
