from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Sequence

from chainseries.core.dto import InternalTransaction
from chainseries.core.models import BLOCKS_PER_DAY, SECONDS_PER_DAY
from chainseries.core.units import ether_to_wei, wei_to_ether


class TransactionPreprocessor(ABC):
    """Rewrites the transaction list before the cumulative series is built."""

    @abstractmethod
    def apply(
        self,
        transactions: Sequence[InternalTransaction],
        current_block: int,
        now: datetime,
    ) -> List[InternalTransaction]:
        raise NotImplementedError


class LaunchSmoothing(TransactionPreprocessor):
    """
    Spreads the observed total evenly over daily synthetic points between
    the launch date and `smoothing_end`, prepended to the real list.

    On-chain activity before launch is near zero, so without these points
    the anchored series starts with a flat run and then a jump.
    Point blocks are estimated from the current block at `blocks_per_day`.
    """

    def __init__(
        self,
        launch_date: datetime,
        smoothing_end: datetime,
        blocks_per_day: int = BLOCKS_PER_DAY,
    ) -> None:
        if smoothing_end <= launch_date:
            raise ValueError("smoothing_end must be after launch_date")
        self._launch = launch_date
        self._end = smoothing_end
        self._blocks_per_day = blocks_per_day

    @property
    def point_count(self) -> int:
        return math.ceil((self._end - self._launch).total_seconds() / SECONDS_PER_DAY)

    def estimate_block(self, at: datetime, current_block: int, now: datetime) -> int:
        elapsed = (now - at).total_seconds()
        return current_block - math.floor(elapsed * self._blocks_per_day / SECONDS_PER_DAY)

    def apply(self, transactions, current_block, now):
        real = list(transactions)
        n = self.point_count
        total = sum((_value(t) for t in real), Decimal("0"))
        share = ether_to_wei(total / n)

        synthetic = []
        for i in range(1, n + 1):
            at = self._launch + timedelta(days=i)
            synthetic.append(
                InternalTransaction(
                    from_address="",
                    to_address="",
                    block_height=self.estimate_block(at, current_block, now),
                    wei_value=share,
                    synthetic=True,
                )
            )
        return synthetic + real


def _value(tx: InternalTransaction) -> Decimal:
    try:
        return wei_to_ether(tx.wei_value)
    except ValueError:
        return Decimal("0")
