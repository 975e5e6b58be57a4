"""Lazily resolved, process-wide binding to the vault contract."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from web3 import Web3
from web3.types import ChecksumAddress

from .exceptions import GatewayError, UpstreamUnavailable
from .ledger import InterfaceDescriptor, LedgerClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultBinding:
    address: ChecksumAddress
    interface: InterfaceDescriptor

    @property
    def abi(self) -> list[dict[str, Any]]:
        return self.interface.abi


InterfaceLookup = Callable[[], Awaitable[VaultBinding]]


class BindingCache:
    """Single-flight memoization of the vault binding.

    The first :meth:`resolve` starts one lookup; every caller that arrives while
    it is in flight awaits that same lookup. A success is kept for the lifetime
    of the cache. A failure is delivered to all waiting callers and leaves the
    cache empty, so the next call starts a fresh lookup.
    """

    def __init__(self, lookup: InterfaceLookup) -> None:
        self._lookup = lookup
        self._binding: VaultBinding | None = None
        self._inflight: asyncio.Future[VaultBinding] | None = None

    @property
    def resolved(self) -> bool:
        return self._binding is not None

    async def resolve(self) -> VaultBinding:
        if self._binding is not None:
            return self._binding
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._populate())
        # A cancelled caller must not cancel the lookup other callers share
        return await asyncio.shield(self._inflight)

    async def _populate(self) -> VaultBinding:
        try:
            try:
                binding = await self._lookup()
            except GatewayError:
                raise
            except Exception as exc:
                raise UpstreamUnavailable(
                    "Failed to resolve the vault interface", details={"error": repr(exc)}
                ) from exc
            self._binding = binding
            logger.info("Resolved vault binding at %s", binding.address)
            return binding
        finally:
            self._inflight = None


def ledger_interface_lookup(
    ledger: LedgerClient,
    vault_address: ChecksumAddress,
    abi: list[dict[str, Any]],
) -> InterfaceLookup:
    """Build the lookup that confirms the vault is deployed and binds ``abi`` to it."""

    async def lookup() -> VaultBinding:
        logger.info("Looking up vault interface at %s", vault_address)
        code = await ledger.fetch_code(vault_address)
        if not code:
            raise UpstreamUnavailable(
                f"No contract deployed at vault address {vault_address}",
                details={"address": vault_address},
            )
        code_hash = Web3.keccak(code).to_0x_hex()
        return VaultBinding(
            address=vault_address,
            interface=InterfaceDescriptor(abi=abi, code_hash=code_hash),
        )

    return lookup
