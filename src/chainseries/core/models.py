from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from chainseries.core.errors import InvalidTimeFrame


BLOCKS_PER_DAY = 6500
SECONDS_PER_DAY = 24 * 3600

CUSTOM_START_ANCHOR = datetime(2024, 3, 20, tzinfo=timezone.utc)
CUSTOM_INTERVAL_COUNT = 30


class TimeFrameKey(str, Enum):
    ONE_DAY = "1d"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Union[str, "TimeFrameKey", None]) -> "TimeFrameKey":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError as e:
            raise InvalidTimeFrame(f"Invalid time frame: {value!r}") from e



# Configuration model

@dataclass(frozen=True)
class TimeFrameConfig:
    """
    Sampling plan for one named window.

    `interval_count` slices produce `interval_count + 1` sample points,
    `blocks_per_interval` blocks apart, ending at the current block.
    """

    key: TimeFrameKey
    total_days: int
    interval_count: int
    blocks_per_interval: int
    start_anchor: Optional[datetime] = None   # set for anchored windows (custom)

    def __post_init__(self) -> None:
        if self.interval_count < 1:
            raise InvalidTimeFrame(f"{self.key.value}: interval_count must be >= 1")
        if self.blocks_per_interval <= 0:
            raise InvalidTimeFrame(f"{self.key.value}: blocks_per_interval must be > 0")


def build_time_frame(key: Union[str, TimeFrameKey], now: datetime) -> TimeFrameConfig:
    k = TimeFrameKey.parse(key)

    if k is TimeFrameKey.ONE_DAY:
        return TimeFrameConfig(k, 1, 24, round(BLOCKS_PER_DAY / 24))
    if k is TimeFrameKey.SEVEN_DAYS:
        return TimeFrameConfig(k, 7, 28, round(BLOCKS_PER_DAY / 4))
    if k is TimeFrameKey.THIRTY_DAYS:
        return TimeFrameConfig(k, 30, 30, BLOCKS_PER_DAY)

    # custom: from the fixed anchor up to now
    days = math.ceil((now - CUSTOM_START_ANCHOR).total_seconds() / SECONDS_PER_DAY)
    return TimeFrameConfig(
        key=k,
        total_days=days,
        interval_count=CUSTOM_INTERVAL_COUNT,
        blocks_per_interval=(BLOCKS_PER_DAY * days) // CUSTOM_INTERVAL_COUNT,
        start_anchor=CUSTOM_START_ANCHOR,
    )


def default_time_frames(now: datetime) -> Dict[TimeFrameKey, TimeFrameConfig]:
    return {k: build_time_frame(k, now) for k in TimeFrameKey}



# Snapshot model

@dataclass(frozen=True)
class CacheSnapshot:

    labels: Tuple[str, ...]
    supply_change: Tuple[Decimal, ...]
    cumulative_generated: Tuple[Decimal, ...]
    contract_balance_total: Decimal
    current_eth_total: Decimal
    generated_at: Optional[datetime] = field(default=None, compare=False)

    def scaled_cumulative(self, multiplier: Decimal) -> "CacheSnapshot":
        return replace(
            self,
            cumulative_generated=tuple(v * multiplier for v in self.cumulative_generated),
        )
