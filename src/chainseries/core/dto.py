from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class InternalTransaction:
    from_address: str
    to_address: str
    block_height: int
    wei_value: str          # raw decimal digit string, arbitrary precision
    tx_hash: str = ""
    synthetic: bool = False  # injected by a preprocessor, not on-chain


@dataclass(frozen=True)
class BalanceSample:
    block_height: int
    eth_value: Decimal
