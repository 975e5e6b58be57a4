"""Process configuration loaded from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_PORT = 3001
DEFAULT_HOST = "0.0.0.0"
DEFAULT_CONFIRMATION_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_REQUEST_TIMEOUT = 10.0

REQUIRED_VARS = (
    "RPC_URL",
    "PRIVATE_KEY",
    "VAULT_ADDRESS",
    "COLLATERAL_TOKEN_ADDRESS",
    "DEBT_TOKEN_ADDRESS",
)


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    private_key: str
    vault_address: str
    collateral_token_address: str
    debt_token_address: str
    account_address: str | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    expected_chain_id: int | None = None
    vault_abi_path: str | None = None
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from ``environ`` (defaults to ``os.environ`` after loading .env)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        missing_vars = [key for key in REQUIRED_VARS if not environ.get(key)]
        if missing_vars:
            raise ConfigurationError(f"Missing environment variables: {', '.join(missing_vars)}")

        private_key = environ["PRIVATE_KEY"].strip()
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key

        origins = tuple(
            origin.strip() for origin in environ.get("CORS_ORIGINS", "*").split(",") if origin.strip()
        )

        return cls(
            rpc_url=environ["RPC_URL"],
            private_key=private_key,
            vault_address=environ["VAULT_ADDRESS"],
            collateral_token_address=environ["COLLATERAL_TOKEN_ADDRESS"],
            debt_token_address=environ["DEBT_TOKEN_ADDRESS"],
            account_address=environ.get("ACCOUNT_ADDRESS") or None,
            host=environ.get("HOST", DEFAULT_HOST),
            port=_number(environ, "PORT", int, DEFAULT_PORT),
            confirmation_timeout=_number(
                environ, "CONFIRMATION_TIMEOUT", float, DEFAULT_CONFIRMATION_TIMEOUT
            ),
            poll_interval=_number(environ, "CONFIRMATION_POLL_INTERVAL", float, DEFAULT_POLL_INTERVAL),
            request_timeout=_number(environ, "REQUEST_TIMEOUT", float, DEFAULT_REQUEST_TIMEOUT),
            expected_chain_id=_number(environ, "EXPECTED_CHAIN_ID", int, None),
            vault_abi_path=environ.get("VAULT_ABI_PATH") or None,
            cors_origins=origins or ("*",),
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        )


def _number(environ: Mapping[str, str], key: str, kind: type, default):
    raw = environ.get(key)
    if not raw:
        return default
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for {key}: {raw}") from exc
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got {raw}")
    return value
