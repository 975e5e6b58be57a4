"""Conversion between Python integers and the two-word uint256 layout.

The vault and token contracts take 256-bit amounts as a ``(low, high)`` pair of
``uint128`` words, with ``value = high * 2**128 + low``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .exceptions import UpstreamUnavailable, ValidationError

WORD_BITS = 128
WORD_MASK = (1 << WORD_BITS) - 1
UINT256_MAX = (1 << 256) - 1

# Longest decimal/hex text that can still hold a uint256; bounds the work of int().
_MAX_DECIMAL_DIGITS = len(str(UINT256_MAX))
_MAX_HEX_DIGITS = 64
_DECIMAL_RE = re.compile(r"^-?[0-9]+$")
_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")


@dataclass(frozen=True)
class WideInteger:
    low: int
    high: int

    def __post_init__(self) -> None:
        for name, word in (("low", self.low), ("high", self.high)):
            if isinstance(word, bool) or not isinstance(word, int):
                raise ValidationError(f"{name} word must be an integer", field=name, value=word)
            if word < 0 or word > WORD_MASK:
                raise ValidationError(
                    f"{name} word out of uint128 range", field=name, value=word
                )

    @classmethod
    def from_words(cls, low: int, high: int) -> WideInteger:
        return cls(low=low, high=high)

    @property
    def value(self) -> int:
        return combine(self.low, self.high)

    def as_call_argument(self) -> tuple[int, int]:
        """Return the ``(low, high)`` struct the contract ABI expects."""
        return (self.low, self.high)

    def to_hex(self) -> str:
        return decode(self)


def split(value: int) -> tuple[int, int]:
    """Split ``value`` into ``(value mod 2**128, value div 2**128)``."""
    return value & WORD_MASK, value >> WORD_BITS


def combine(low: int, high: int) -> int:
    return (high << WORD_BITS) | low


def encode(value: int, field: str = "amount") -> WideInteger:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field, value=value)
    if value < 0:
        raise ValidationError(f"{field} must be non-negative", field=field, value=value)
    if value > UINT256_MAX:
        raise ValidationError(f"{field} exceeds uint256 range", field=field, value=value)
    low, high = split(value)
    return WideInteger(low=low, high=high)


def decode(wide: WideInteger) -> str:
    """Render as lowercase hex without leading zeros (``0x0`` for zero)."""
    return hex(wide.value)


def from_result(result: Any) -> WideInteger:
    """Build a WideInteger from a contract return value.

    Contracts return either the ``(low, high)`` struct or a plain uint. A value
    that fits neither is the ledger's fault, not the caller's.
    """
    try:
        if isinstance(result, (tuple, list)) and len(result) == 2:
            return WideInteger.from_words(result[0], result[1])
        if isinstance(result, int):
            return encode(result, field="result")
    except ValidationError as exc:
        raise UpstreamUnavailable(
            f"Contract returned an invalid uint256: {exc.message}", details={"result": repr(result)}
        ) from exc
    raise UpstreamUnavailable(
        "Contract returned an unexpected uint256 shape", details={"result": repr(result)}
    )


def parse_amount(raw: Any, field: str = "amount") -> WideInteger:
    """Parse user input (decimal string, 0x-hex string or JSON integer)."""
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be an integer", field=field, value=raw)
    if isinstance(raw, int):
        return encode(raw, field=field)
    if not isinstance(raw, str):
        raise ValidationError(
            f"{field} must be a decimal string", field=field, value=raw
        )

    text = raw.strip()
    if _HEX_RE.match(text):
        digits = text[2:].lstrip("0")
        if len(digits) > _MAX_HEX_DIGITS:
            raise ValidationError(f"{field} exceeds uint256 range", field=field, value=raw)
        return encode(int(text, 16), field=field)
    if _DECIMAL_RE.match(text):
        if text.startswith("-"):
            raise ValidationError(f"{field} must be non-negative", field=field, value=raw)
        digits = text.lstrip("0")
        if len(digits) > _MAX_DECIMAL_DIGITS:
            raise ValidationError(f"{field} exceeds uint256 range", field=field, value=raw)
        return encode(int(text, 10), field=field)

    raise ValidationError(f"{field} is not a valid integer: {raw!r}", field=field, value=raw)
