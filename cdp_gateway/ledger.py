"""Remote ledger access over web3's async JSON-RPC client."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TransactionNotFound
from web3.types import ChecksumAddress

from .abi import function_names
from .errors import DEFAULT_REVERT_REASON, classified, revert_reason
from .exceptions import ConfigurationError, InternalError, UpstreamUnavailable
from .session import SessionContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterfaceDescriptor:
    abi: list[dict[str, Any]]
    code_hash: str


@dataclass(frozen=True)
class ContractCall:
    target: ChecksumAddress
    entrypoint: str
    arguments: tuple[Any, ...]
    abi: list[dict[str, Any]]


class LedgerClient(Protocol):
    async def connect(self, expected_chain_id: int | None = None) -> None: ...

    async def fetch_code(self, address: ChecksumAddress) -> bytes: ...

    async def call(
        self,
        address: ChecksumAddress,
        abi: list[dict[str, Any]],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any: ...

    async def submit(self, call: ContractCall, session: SessionContext) -> str: ...

    async def get_receipt(self, tx_hash: str) -> Any | None: ...

    async def revert_reason(self, tx_hash: str, receipt: Any) -> str: ...

    async def close(self) -> None: ...


class Web3Ledger:
    """Ledger client backed by an ``AsyncWeb3`` HTTP provider.

    Every node interaction is wrapped so that failures leave this class already
    classified (see :mod:`cdp_gateway.errors`).
    """

    def __init__(
        self,
        endpoint: str,
        *,
        request_timeout: float,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(endpoint, request_kwargs={"timeout": request_timeout})
        )
        self._chain_id: int | None = None

    async def connect(self, expected_chain_id: int | None = None) -> None:
        """Check the node is reachable and on the expected network."""
        with classified("connect", endpoint=self.endpoint):
            connected = await self._w3.is_connected()
        if not connected:
            raise UpstreamUnavailable("Failed to connect to the ledger node", endpoint=self.endpoint)

        chain_id = await self.chain_id()
        if expected_chain_id is not None and chain_id != expected_chain_id:
            raise ConfigurationError(
                f"Connected to wrong network. Expected chain ID {expected_chain_id}, got {chain_id}"
            )
        logger.info("Connected to ledger RPC at %s (chain id %s)", self.endpoint, chain_id)

    async def chain_id(self) -> int:
        if self._chain_id is None:
            with classified("chain_id", endpoint=self.endpoint):
                self._chain_id = await self._w3.eth.chain_id
        return self._chain_id

    async def fetch_code(self, address: ChecksumAddress) -> bytes:
        with classified("get_code", endpoint=self.endpoint):
            return bytes(await self._w3.eth.get_code(address))

    async def call(
        self,
        address: ChecksumAddress,
        abi: list[dict[str, Any]],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        function = self._function(address, abi, function_name, args)
        with classified(f"call {function_name}", endpoint=self.endpoint):
            return await function.call()

    async def submit(self, call: ContractCall, session: SessionContext) -> str:
        """Build, sign and broadcast ``call``; return the transaction hash.

        Gas estimation happens while building, so a call the node would reject
        raises :class:`~cdp_gateway.exceptions.Reverted` before anything is sent.
        """
        function = self._function(call.target, call.abi, call.entrypoint, call.arguments)
        chain_id = await self.chain_id()
        with classified(f"submit {call.entrypoint}", endpoint=self.endpoint):
            nonce = await self._w3.eth.get_transaction_count(session.signer_address, "pending")
            txn = await function.build_transaction(
                {
                    "from": session.signer_address,
                    "nonce": nonce,
                    "chainId": chain_id,
                }
            )
            signed_txn = Account.sign_transaction(txn, session.signer_secret)
            tx_hash = await self._w3.eth.send_raw_transaction(signed_txn.raw_transaction)
        return tx_hash.to_0x_hex()

    async def get_receipt(self, tx_hash: str) -> Any | None:
        with classified("get_transaction_receipt", endpoint=self.endpoint):
            try:
                return await self._w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                return None

    async def revert_reason(self, tx_hash: str, receipt: Any) -> str:
        """Replay a reverted transaction at its inclusion block to recover the reason."""
        try:
            tx = await self._w3.eth.get_transaction(tx_hash)
            replay = {
                "from": tx["from"],
                "to": tx["to"],
                "data": tx["input"],
                "value": tx["value"],
                "gas": tx["gas"],
            }
            await self._w3.eth.call(replay, block_identifier=receipt["blockNumber"])
        except ContractLogicError as exc:
            return revert_reason(exc)
        except Exception as exc:
            # The receipt already proves the revert; only the reason is lost.
            logger.warning("Could not replay reverted transaction %s: %r", tx_hash, exc)
        return DEFAULT_REVERT_REASON

    async def close(self) -> None:
        provider = self._w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    def _function(
        self,
        address: ChecksumAddress,
        abi: list[dict[str, Any]],
        function_name: str,
        args: Sequence[Any],
    ):
        if function_name not in function_names(abi):
            raise InternalError(
                f"Contract interface at {address} has no entrypoint {function_name}",
                details={"address": address, "entrypoint": function_name},
            )
        contract = self._w3.eth.contract(address=address, abi=abi)
        return getattr(contract.functions, function_name)(*args)
