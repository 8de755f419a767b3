from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence

from chainseries.core.dto import BalanceSample, InternalTransaction
from chainseries.core.errors import InvalidTimeFrame, PartialSampleFailure, SeriesError
from chainseries.core.models import CacheSnapshot, TimeFrameConfig, TimeFrameKey
from chainseries.core.units import round_eth, wei_to_ether
from chainseries.ports.chain_data_port import ChainDataPort
from chainseries.services.smoothing import TransactionPreprocessor
from chainseries.services.time_labels import labels_for

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SeriesGenerator:
    """
    Builds one time-frame snapshot for the tracked address / contract pair.

    - Balance series: one sample per interval boundary, oldest first
    - Cumulative series: contract value received at or before each boundary
    - Published series: pairwise deltas of both, aligned with labels[1:]
    """

    def __init__(
        self,
        chain: ChainDataPort,
        tracked_address: str,
        contract_address: str,
        balance_offset: Decimal = ZERO,
        preprocessors: Optional[Dict[TimeFrameKey, Sequence[TransactionPreprocessor]]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.chain = chain
        self.tracked_address = tracked_address
        self.contract_address = contract_address
        self.balance_offset = Decimal(balance_offset)
        self.preprocessors = dict(preprocessors or {})
        self.clock = clock

    def generate(
        self,
        cfg: TimeFrameConfig,
        current_block: int,
        current_balance: Decimal,
        transactions: Sequence[InternalTransaction],
    ) -> CacheSnapshot:
        now = self.clock()

        heights = self.sample_block_heights(cfg, current_block)
        samples = self.fetch_balance_samples(heights)

        prepared = list(transactions)
        for stage in self.preprocessors.get(cfg.key, ()):
            prepared = stage.apply(prepared, current_block, now)

        cumulative = self.cumulative_series(prepared, heights)
        labels = labels_for(cfg, now)

        supply_delta = self.pairwise_deltas([s.eth_value for s in samples])
        generated_delta = self.pairwise_deltas(cumulative)

        values = [self._tx_value(t) for t in transactions if not t.synthetic]
        contract_total = sum((v for v in values if v is not None), ZERO)

        return CacheSnapshot(
            labels=tuple(labels[1:]),
            supply_change=tuple(supply_delta),
            cumulative_generated=tuple(generated_delta),
            contract_balance_total=round_eth(contract_total),
            current_eth_total=round_eth(Decimal(current_balance) + self.balance_offset),
            generated_at=now,
        )

    # -------------------------
    # Sampling
    # -------------------------

    @staticmethod
    def sample_block_heights(cfg: TimeFrameConfig, current_block: int) -> List[int]:
        n = cfg.interval_count
        heights = [current_block - (n - i) * cfg.blocks_per_interval for i in range(n + 1)]
        if heights[0] < 0:
            raise InvalidTimeFrame(
                f"{cfg.key.value}: window reaches before genesis (first block {heights[0]})"
            )
        return heights

    def fetch_balance_samples(self, heights: Sequence[int]) -> List[BalanceSample]:
        samples: List[BalanceSample] = []
        for h in heights:
            try:
                value = self.chain.get_balance_at_block(self.tracked_address, h)
            except SeriesError as e:
                failure = PartialSampleFailure(f"balance at block {h}: {e}")
                logger.warning("%s; using 0", failure)
                value = ZERO
            samples.append(BalanceSample(block_height=h, eth_value=Decimal(value)))
        return samples

    # -------------------------
    # Series math
    # -------------------------

    @classmethod
    def cumulative_series(
        cls,
        transactions: Sequence[InternalTransaction],
        thresholds: Sequence[int],
    ) -> List[Decimal]:
        totals = [ZERO] * len(thresholds)
        for tx in transactions:
            value = cls._tx_value(tx)
            if value is None:
                continue
            for i, threshold in enumerate(thresholds):
                if tx.block_height <= threshold:
                    totals[i] += value
        return totals

    @staticmethod
    def pairwise_deltas(values: Sequence[Decimal]) -> List[Decimal]:
        return [values[i + 1] - values[i] for i in range(len(values) - 1)]

    @staticmethod
    def _tx_value(tx: InternalTransaction) -> Optional[Decimal]:
        try:
            return wei_to_ether(tx.wei_value)
        except ValueError:
            logger.warning("skipping transaction %s with bad value %r", tx.tx_hash or "?", tx.wei_value)
            return None
