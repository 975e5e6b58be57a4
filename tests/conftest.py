from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence
from typing import Any

import pytest
from eth_account import Account
from fastapi.testclient import TestClient

from cdp_gateway.api import create_app
from cdp_gateway.codec import combine, split
from cdp_gateway.config import Settings
from cdp_gateway.exceptions import Reverted, UpstreamUnavailable
from cdp_gateway.gateway import CdpGateway
from cdp_gateway.ledger import ContractCall
from cdp_gateway.session import SessionContext

PRIVATE_KEY = "0x" + "11" * 32
VAULT_ADDRESS = "0x" + "aa" * 20
COLLATERAL_TOKEN_ADDRESS = "0x" + "bb" * 20
DEBT_TOKEN_ADDRESS = "0x" + "cc" * 20
SIGNER_ADDRESS = Account.from_key(PRIVATE_KEY).address


class StubLedger:
    """In-memory ledger that applies vault effects when a transaction confirms."""

    def __init__(self) -> None:
        self.code = b"\x60\x80\x60\x40"
        self.price = 0
        self.positions: dict[str, list[int]] = {}
        self.health_factors: dict[str, int] = {}
        self.lookup_delay = 0.0
        self.fetch_code_calls = 0
        self.read_calls: list[tuple[str, tuple[Any, ...]]] = []
        self.submitted: list[ContractCall] = []
        self.receipts: dict[str, dict[str, int]] = {}
        self.unreachable = False
        self.reject_with: str | None = None
        self.revert_with: str | None = None
        self.never_confirm = False
        self.closed = False

    async def connect(self, expected_chain_id: int | None = None) -> None:
        return None

    async def fetch_code(self, address: str) -> bytes:
        self.fetch_code_calls += 1
        await asyncio.sleep(self.lookup_delay)
        if self.unreachable:
            raise UpstreamUnavailable("Could not reach the ledger node", endpoint="stub")
        return self.code

    async def call(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        self.read_calls.append((function_name, tuple(args)))
        if self.unreachable:
            raise UpstreamUnavailable("Could not reach the ledger node", endpoint="stub")
        if function_name == "get_btc_price":
            return split(self.price)
        if function_name == "get_position":
            collateral, debt = self.positions.get(args[0], [0, 0])
            return [split(collateral), split(debt)]
        if function_name == "get_health_factor":
            return split(self.health_factors.get(args[0], 0))
        raise AssertionError(f"unexpected read {function_name}")

    async def submit(self, call: ContractCall, session: SessionContext) -> str:
        if self.unreachable:
            raise UpstreamUnavailable("Could not reach the ledger node", endpoint="stub")
        if self.reject_with is not None:
            raise Reverted(self.reject_with)
        self.submitted.append(call)
        tx_hash = f"0x{len(self.submitted):064x}"
        if self.revert_with is not None:
            self.receipts[tx_hash] = {"status": 0, "blockNumber": 7}
        elif not self.never_confirm:
            self._apply(call, session)
            self.receipts[tx_hash] = {"status": 1, "blockNumber": 7}
        return tx_hash

    async def get_receipt(self, tx_hash: str) -> dict[str, int] | None:
        return self.receipts.get(tx_hash)

    async def revert_reason(self, tx_hash: str, receipt: Any) -> str:
        return self.revert_with or "execution reverted"

    async def close(self) -> None:
        self.closed = True

    def _apply(self, call: ContractCall, session: SessionContext) -> None:
        signer = session.signer_address
        position = self.positions.setdefault(signer, [0, 0])
        if call.entrypoint == "set_btc_price":
            self.price = combine(*call.arguments[0])
        elif call.entrypoint == "deposit_collateral":
            position[0] += combine(*call.arguments[0])
        elif call.entrypoint == "withdraw_collateral":
            position[0] -= combine(*call.arguments[0])
        elif call.entrypoint == "borrow":
            position[1] += combine(*call.arguments[0])
        elif call.entrypoint == "repay":
            position[1] -= combine(*call.arguments[0])


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "rpc_url": "http://127.0.0.1:8545",
        "private_key": PRIVATE_KEY,
        "vault_address": VAULT_ADDRESS,
        "collateral_token_address": COLLATERAL_TOKEN_ADDRESS,
        "debt_token_address": DEBT_TOKEN_ADDRESS,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def session() -> SessionContext:
    return SessionContext.from_settings(make_settings())


@pytest.fixture
def ledger() -> StubLedger:
    return StubLedger()


@pytest.fixture
def gateway(session: SessionContext, ledger: StubLedger) -> CdpGateway:
    return CdpGateway(session, ledger, confirmation_timeout=0.2, poll_interval=0.01)


@pytest.fixture
def client(gateway: CdpGateway) -> Iterator[TestClient]:
    with TestClient(create_app(gateway)) as test_client:
        yield test_client
