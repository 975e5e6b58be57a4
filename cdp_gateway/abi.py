"""Contract interfaces for the CDP vault and its test tokens."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError

# 256-bit amounts travel as a struct of two uint128 words
U256_COMPONENTS = [
    {"name": "low", "type": "uint128"},
    {"name": "high", "type": "uint128"},
]


def _u256(name: str) -> dict[str, Any]:
    return {"name": name, "type": "tuple", "components": U256_COMPONENTS}


VAULT_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "get_btc_price",
        "outputs": [_u256("")],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_u256("price")],
        "name": "set_btc_price",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "user", "type": "address"}],
        "name": "get_position",
        "outputs": [_u256("collateral"), _u256("debt")],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "user", "type": "address"}],
        "name": "get_health_factor",
        "outputs": [_u256("")],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [_u256("amount")],
        "name": "deposit_collateral",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [_u256("amount")],
        "name": "withdraw_collateral",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [_u256("amount")],
        "name": "borrow",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [_u256("amount")],
        "name": "repay",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "user", "type": "address"}],
        "name": "liquidate",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

# Mintable test token (collateral and debt share the same interface)
TOKEN_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"name": "to", "type": "address"}, _u256("amount")],
        "name": "mint",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"name": "spender", "type": "address"}, _u256("amount")],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def load_abi(path: str | Path) -> list[dict[str, Any]]:
    """Load an ABI from a compiler artifact (``{"abi": [...]}``) or a bare list."""
    abi_path = Path(path)
    if not abi_path.exists():
        raise ConfigurationError(f"ABI file not found at {abi_path}")
    with open(abi_path, "r") as abi_file:
        contract_json = json.load(abi_file)
    abi = contract_json["abi"] if isinstance(contract_json, dict) else contract_json
    if not isinstance(abi, list):
        raise ConfigurationError(f"ABI file {abi_path} does not contain an ABI list")
    return abi


def function_names(abi: list[dict[str, Any]]) -> set[str]:
    return {entry["name"] for entry in abi if entry.get("type") == "function"}
