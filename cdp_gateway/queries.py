"""Read-only vault queries."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from web3.types import ChecksumAddress

from .binding import BindingCache
from .codec import WideInteger, decode, from_result
from .exceptions import UpstreamUnavailable
from .ledger import LedgerClient


@dataclass(frozen=True)
class Position:
    collateral: WideInteger
    debt: WideInteger
    health_factor: WideInteger

    def to_response(self) -> dict[str, str]:
        return {
            "collateral": decode(self.collateral),
            "debt": decode(self.debt),
            "healthFactor": decode(self.health_factor),
        }


class ReadFacade:
    def __init__(self, ledger: LedgerClient, bindings: BindingCache) -> None:
        self._ledger = ledger
        self._bindings = bindings

    async def get_price(self) -> WideInteger:
        vault = await self._bindings.resolve()
        result = await self._ledger.call(vault.address, vault.abi, "get_btc_price")
        return from_result(result)

    async def get_position(self, account: ChecksumAddress) -> Position:
        vault = await self._bindings.resolve()
        position, health_factor = await asyncio.gather(
            self._ledger.call(vault.address, vault.abi, "get_position", (account,)),
            self._ledger.call(vault.address, vault.abi, "get_health_factor", (account,)),
        )
        if not isinstance(position, (list, tuple)) or len(position) != 2:
            raise UpstreamUnavailable(
                "Vault returned an unexpected position shape",
                details={"account": account, "result": repr(position)},
            )
        collateral, debt = position
        return Position(
            collateral=from_result(collateral),
            debt=from_result(debt),
            health_factor=from_result(health_factor),
        )
