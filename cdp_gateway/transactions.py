"""Submission and confirmation of state-changing contract calls."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import Reverted, TimedOut, UpstreamUnavailable
from .ledger import ContractCall, LedgerClient
from .session import SessionContext

logger = logging.getLogger(__name__)


class TxStatus(str, Enum):
    BUILDING = "building"
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"


@dataclass
class PendingTransaction:
    action: str
    hash: str | None = None
    submitted_at: float | None = None
    status: TxStatus = TxStatus.BUILDING
    block_number: int | None = None

    def advance(self, status: TxStatus) -> None:
        logger.debug("Transaction %s for %s: %s -> %s", self.hash, self.action, self.status.value, status.value)
        self.status = status


@dataclass(frozen=True)
class TransactionResult:
    tx_hash: str
    block_number: int | None = None


class TransactionManager:
    """Drive one contract call from submission to a terminal state.

    One attempt per request: neither reverts nor submission failures are
    retried. Nonce assignment and broadcast are serialized for the signer so
    interleaved requests never reuse a nonce; confirmation waits are not.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        session: SessionContext,
        *,
        confirmation_timeout: float,
        poll_interval: float,
    ) -> None:
        self._ledger = ledger
        self._session = session
        self._confirmation_timeout = confirmation_timeout
        self._poll_interval = poll_interval
        self._submit_lock = asyncio.Lock()

    async def submit_and_confirm(self, call: ContractCall, *, action: str | None = None) -> TransactionResult:
        pending = PendingTransaction(action=action or call.entrypoint)

        async with self._submit_lock:
            logger.info("Dispatching %s via %s on %s", pending.action, call.entrypoint, call.target)
            try:
                tx_hash = await self._ledger.submit(call, self._session)
            except Reverted as exc:
                pending.advance(TxStatus.REVERTED)
                logger.warning("Node rejected %s before submission: %s", pending.action, exc.reason)
                raise

        pending.hash = tx_hash
        pending.submitted_at = time.monotonic()
        pending.advance(TxStatus.SUBMITTED)
        logger.info("Transaction sent for action=%s hash=%s", pending.action, tx_hash)

        pending.advance(TxStatus.CONFIRMING)
        try:
            receipt = await asyncio.wait_for(
                self._wait_for_receipt(tx_hash), timeout=self._confirmation_timeout
            )
        except asyncio.TimeoutError:
            pending.advance(TxStatus.TIMED_OUT)
            logger.warning(
                "Transaction not confirmed for action=%s hash=%s after %.1fs",
                pending.action,
                tx_hash,
                self._confirmation_timeout,
            )
            raise TimedOut(tx_hash, self._confirmation_timeout, details={"action": pending.action}) from None

        pending.block_number = _field(receipt, "blockNumber")
        if _field(receipt, "status") != 1:
            pending.advance(TxStatus.REVERTED)
            reason = await self._ledger.revert_reason(tx_hash, receipt)
            logger.warning(
                "Transaction reverted for action=%s hash=%s reason=%s", pending.action, tx_hash, reason
            )
            raise Reverted(
                reason,
                tx_hash=tx_hash,
                details={"action": pending.action, "block_number": pending.block_number},
            )

        pending.advance(TxStatus.CONFIRMED)
        logger.info(
            "Transaction confirmed for action=%s hash=%s block=%s",
            pending.action,
            tx_hash,
            pending.block_number,
        )
        return TransactionResult(tx_hash=tx_hash, block_number=pending.block_number)

    async def _wait_for_receipt(self, tx_hash: str) -> Any:
        while True:
            try:
                receipt = await self._ledger.get_receipt(tx_hash)
            except UpstreamUnavailable as exc:
                # The transaction is already broadcast; keep polling until the budget runs out
                logger.warning("Receipt poll for %s failed: %s", tx_hash, exc.message)
                receipt = None
            if receipt is not None:
                return receipt
            await asyncio.sleep(self._poll_interval)


def _field(receipt: Any, name: str) -> Any:
    if isinstance(receipt, dict):
        return receipt.get(name)
    try:
        return receipt[name]
    except (KeyError, TypeError):
        return getattr(receipt, name, None)
