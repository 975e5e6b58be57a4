from __future__ import annotations

import pytest

from cdp_gateway.codec import (
    UINT256_MAX,
    WORD_MASK,
    WideInteger,
    combine,
    decode,
    encode,
    from_result,
    parse_amount,
    split,
)
from cdp_gateway.exceptions import UpstreamUnavailable, ValidationError

BOUNDARIES = [0, 1, WORD_MASK, WORD_MASK + 1, 10**18, UINT256_MAX - 1, UINT256_MAX]


@pytest.mark.parametrize("value", BOUNDARIES)
def test_split_combine_round_trip(value: int) -> None:
    low, high = split(value)
    assert low == value % 2**128
    assert high == value // 2**128
    assert combine(low, high) == value


@pytest.mark.parametrize("value", BOUNDARIES)
def test_decode_is_lowercase_hex_of_value(value: int) -> None:
    text = decode(encode(value))
    assert text.startswith("0x")
    assert text == text.lower()
    assert int(text, 16) == value


def test_decode_zero_and_leading_zeros() -> None:
    assert decode(encode(0)) == "0x0"
    assert decode(encode(255)) == "0xff"
    assert decode(encode(2**128)) == "0x1" + "0" * 32


def test_encode_splits_words() -> None:
    wide = encode(10**18)
    assert wide == WideInteger(low=10**18, high=0)
    assert wide.as_call_argument() == (10**18, 0)

    wide = encode(2**128 + 5)
    assert (wide.low, wide.high) == (5, 1)


@pytest.mark.parametrize("value", [-1, UINT256_MAX + 1, -(2**300), 2**300])
def test_encode_rejects_out_of_range(value: int) -> None:
    with pytest.raises(ValidationError):
        encode(value)


def test_wide_integer_rejects_oversized_words() -> None:
    with pytest.raises(ValidationError):
        WideInteger(low=WORD_MASK + 1, high=0)
    with pytest.raises(ValidationError):
        WideInteger.from_words(0, -1)


def test_wide_integer_is_immutable() -> None:
    wide = encode(42)
    with pytest.raises(AttributeError):
        wide.low = 7  # type: ignore[misc]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1000000000000000000", 10**18),
        ("  42 ", 42),
        ("0", 0),
        ("007", 7),
        ("0xFF", 255),
        (12, 12),
        (str(UINT256_MAX), UINT256_MAX),
    ],
)
def test_parse_amount_accepts_integers(raw: object, expected: int) -> None:
    assert parse_amount(raw).value == expected


@pytest.mark.parametrize(
    "raw",
    ["", "abc", "1.5", "1e18", "-5", "0x", "-0x10", "+3", None, 1.5, True, [1], str(UINT256_MAX + 1), "9" * 5000],
)
def test_parse_amount_rejects_malformed(raw: object) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_amount(raw, field="price")
    assert excinfo.value.field == "price"


def test_parse_amount_negative_message() -> None:
    with pytest.raises(ValidationError, match="non-negative"):
        parse_amount("-5")


def test_from_result_accepts_struct_and_plain_uint() -> None:
    assert from_result((5, 1)).value == 2**128 + 5
    assert from_result([0, 0]).value == 0
    assert from_result(99).value == 99


def test_from_result_blames_ledger_for_bad_shapes() -> None:
    with pytest.raises(UpstreamUnavailable):
        from_result("0x10")
    with pytest.raises(UpstreamUnavailable):
        from_result((2**129, 0))
