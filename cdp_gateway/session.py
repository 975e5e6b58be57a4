"""Signing identity and the fixed set of contract addresses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from eth_account import Account
from web3 import Web3
from web3.types import ChecksumAddress

from .config import Settings
from .exceptions import ConfigurationError, ValidationError

TokenKind = Literal["collateral", "debt"]


def is_valid_address(address: str) -> bool:
    if not isinstance(address, str) or not address.strip():
        return False
    return Web3.is_address(address.strip())


def checksum(address: str, field: str = "address") -> ChecksumAddress:
    """Validate caller-supplied ``address`` and return its checksum form."""
    if not is_valid_address(address):
        raise ValidationError(f"Invalid address for {field}: {address}", field=field, value=address)
    return Web3.to_checksum_address(address.strip())


@dataclass(frozen=True)
class TokenAddresses:
    collateral: ChecksumAddress
    debt: ChecksumAddress

    def for_kind(self, kind: TokenKind) -> ChecksumAddress:
        if kind == "collateral":
            return self.collateral
        if kind == "debt":
            return self.debt
        raise ValidationError(f"Unknown token kind: {kind}", field="token", value=kind)


@dataclass(frozen=True)
class SessionContext:
    endpoint_address: str
    signer_address: ChecksumAddress
    signer_secret: str = field(repr=False)
    vault_address: ChecksumAddress
    token_addresses: TokenAddresses

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionContext:
        # Derive public address from private key
        try:
            signer = Account.from_key(settings.private_key)
        except Exception as exc:
            raise ConfigurationError(f"Invalid private key: {exc}") from exc

        if settings.account_address is not None:
            configured = _startup_checksum("ACCOUNT_ADDRESS", settings.account_address)
            if configured != signer.address:
                raise ConfigurationError(
                    f"ACCOUNT_ADDRESS {configured} does not match the private key's address {signer.address}"
                )

        return cls(
            endpoint_address=settings.rpc_url,
            signer_address=Web3.to_checksum_address(signer.address),
            signer_secret=settings.private_key,
            vault_address=_startup_checksum("VAULT_ADDRESS", settings.vault_address),
            token_addresses=TokenAddresses(
                collateral=_startup_checksum(
                    "COLLATERAL_TOKEN_ADDRESS", settings.collateral_token_address
                ),
                debt=_startup_checksum("DEBT_TOKEN_ADDRESS", settings.debt_token_address),
            ),
        )


def _startup_checksum(var_name: str, address: str) -> ChecksumAddress:
    if not is_valid_address(address):
        raise ConfigurationError(f"Invalid Ethereum address for {var_name}: {address}")
    return Web3.to_checksum_address(address.strip())
