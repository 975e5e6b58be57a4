"""Exception hierarchy for the CDP gateway."""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base exception for every failure the gateway reports to a caller."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(GatewayError):
    """Raised when caller input is malformed or out of range."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class UpstreamUnavailable(GatewayError):
    """Raised when the ledger node or the vault interface cannot be reached."""

    status_code = 502

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint


class Reverted(GatewayError):
    """Raised when remote execution rejected the call."""

    status_code = 422

    def __init__(
        self,
        reason: str,
        tx_hash: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(f"Transaction reverted: {reason}", details)
        self.reason = reason
        self.tx_hash = tx_hash


class TimedOut(GatewayError):
    """Raised when confirmation was not observed within the waiting budget.

    The transaction may still be included later; callers should look it up by
    hash before resubmitting.
    """

    status_code = 504

    def __init__(self, tx_hash: str, timeout: float, details: dict | None = None):
        super().__init__(
            f"Transaction {tx_hash} not confirmed within {timeout:g}s; outcome unknown",
            details,
        )
        self.tx_hash = tx_hash
        self.timeout = timeout


class InternalError(GatewayError):
    """Raised for failures that fit no other category."""

    status_code = 500


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""
