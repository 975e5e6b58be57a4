"""CDP vault operations exposed by the HTTP surface."""

from __future__ import annotations

from typing import Any

from .abi import TOKEN_ABI, VAULT_ABI, load_abi
from .binding import BindingCache, ledger_interface_lookup
from .codec import WideInteger, parse_amount
from .config import Settings
from .ledger import ContractCall, LedgerClient, Web3Ledger
from .queries import Position, ReadFacade
from .session import SessionContext, TokenKind, checksum
from .transactions import TransactionManager, TransactionResult


class CdpGateway:
    """Validate caller input, then read from or transact against the vault.

    Input is parsed and range-checked before any remote call is made.
    """

    def __init__(
        self,
        session: SessionContext,
        ledger: LedgerClient,
        *,
        vault_abi: list[dict[str, Any]] | None = None,
        confirmation_timeout: float = 120.0,
        poll_interval: float = 1.0,
        bindings: BindingCache | None = None,
    ) -> None:
        self.session = session
        self.ledger = ledger
        self.bindings = bindings or BindingCache(
            ledger_interface_lookup(ledger, session.vault_address, vault_abi or VAULT_ABI)
        )
        self.reads = ReadFacade(ledger, self.bindings)
        self.transactions = TransactionManager(
            ledger,
            session,
            confirmation_timeout=confirmation_timeout,
            poll_interval=poll_interval,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> CdpGateway:
        session = SessionContext.from_settings(settings)
        ledger = Web3Ledger(settings.rpc_url, request_timeout=settings.request_timeout)
        vault_abi = load_abi(settings.vault_abi_path) if settings.vault_abi_path else VAULT_ABI
        return cls(
            session,
            ledger,
            vault_abi=vault_abi,
            confirmation_timeout=settings.confirmation_timeout,
            poll_interval=settings.poll_interval,
        )

    async def aclose(self) -> None:
        await self.ledger.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_price(self) -> WideInteger:
        return await self.reads.get_price()

    async def get_position(self, address: str) -> Position:
        account = checksum(address, field="address")
        return await self.reads.get_position(account)

    # ------------------------------------------------------------------
    # Vault writes
    # ------------------------------------------------------------------
    async def set_price(self, price: Any) -> TransactionResult:
        return await self._vault_amount_call("set_btc_price", parse_amount(price, field="price"))

    async def deposit(self, amount: Any) -> TransactionResult:
        return await self._vault_amount_call("deposit_collateral", parse_amount(amount))

    async def borrow(self, amount: Any) -> TransactionResult:
        return await self._vault_amount_call("borrow", parse_amount(amount))

    async def repay(self, amount: Any) -> TransactionResult:
        return await self._vault_amount_call("repay", parse_amount(amount))

    async def withdraw(self, amount: Any) -> TransactionResult:
        return await self._vault_amount_call("withdraw_collateral", parse_amount(amount))

    async def liquidate(self, user: str) -> TransactionResult:
        target = checksum(user, field="user")
        vault = await self.bindings.resolve()
        call = ContractCall(vault.address, "liquidate", (target,), vault.abi)
        return await self.transactions.submit_and_confirm(call, action="liquidate")

    # ------------------------------------------------------------------
    # Test token helpers
    # ------------------------------------------------------------------
    async def mint(self, kind: TokenKind, to: str, amount: Any) -> TransactionResult:
        recipient = checksum(to, field="to")
        value = parse_amount(amount)
        token = self.session.token_addresses.for_kind(kind)
        call = ContractCall(token, "mint", (recipient, value.as_call_argument()), TOKEN_ABI)
        return await self.transactions.submit_and_confirm(call, action=f"mint_{kind}")

    async def approve(self, kind: TokenKind, amount: Any) -> TransactionResult:
        """Approve the vault to spend ``amount`` of the signer's ``kind`` token."""
        value = parse_amount(amount)
        token = self.session.token_addresses.for_kind(kind)
        call = ContractCall(
            token,
            "approve",
            (self.session.vault_address, value.as_call_argument()),
            TOKEN_ABI,
        )
        return await self.transactions.submit_and_confirm(call, action=f"approve_{kind}")

    async def _vault_amount_call(self, entrypoint: str, amount: WideInteger) -> TransactionResult:
        vault = await self.bindings.resolve()
        call = ContractCall(vault.address, entrypoint, (amount.as_call_argument(),), vault.abi)
        return await self.transactions.submit_and_confirm(call, action=entrypoint)
