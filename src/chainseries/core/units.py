from __future__ import annotations

from decimal import Decimal
from typing import Union

WEI_DECIMALS = 18
WEI_PER_ETH = Decimal("1000000000000000000")
ETH_QUANT = Decimal("0.0001")


def wei_to_ether(value: Union[str, int]) -> Decimal:
    """
    Decode a wei amount into whole-ether units.

    The digit string is split into the integer part (all but the last 18
    digits) and the fractional part (last 18 digits, zero padded) so no
    precision is lost on large values.
    """
    digits = str(value).strip()
    negative = digits.startswith("-")
    if negative:
        digits = digits[1:]
    if not digits.isdigit():
        raise ValueError(f"Invalid wei value: {value!r}")

    whole = digits[:-WEI_DECIMALS] or "0"
    frac = digits[-WEI_DECIMALS:].rjust(WEI_DECIMALS, "0")
    eth = Decimal(f"{whole}.{frac}")
    return -eth if negative else eth


def ether_to_wei(value: Union[Decimal, int, float, str]) -> str:
    wei = (Decimal(str(value)) * WEI_PER_ETH).to_integral_value()
    return str(int(wei))


def round_eth(value: Decimal) -> Decimal:
    return Decimal(value).quantize(ETH_QUANT)
