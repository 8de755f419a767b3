from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from chainseries.core.errors import InvalidTimeFrame, SnapshotNotReady
from chainseries.io.schemas import cache_to_dict, snapshot_to_dict
from chainseries.services.cache_store import CacheStore

logger = logging.getLogger(__name__)

INVALID_TIME_FRAME = {"error": "Invalid time frame"}


@dataclass(frozen=True)
class ReadResult:
    status: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status == 200


def parse_flag(value: Union[bool, str, None]) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() == "true"


class ReadApi:
    """
    Framework-free read side of the cache. Never raises for bad input.

    `simulate` scales `cumulativeGenerated` by a fixed multiplier; it is an
    illustration for the chart, not a model.
    """

    def __init__(self, store: CacheStore, simulate_multiplier: Decimal = Decimal("1.1")) -> None:
        self.store = store
        self.simulate_multiplier = Decimal(simulate_multiplier)

    def get_data(self, time_frame: Optional[str], simulate: Union[bool, str, None] = False) -> ReadResult:
        logger.info("data request time_frame=%s simulate=%s", time_frame, simulate)
        try:
            snapshot = self.store.get(time_frame)
        except (InvalidTimeFrame, SnapshotNotReady) as e:
            logger.warning("invalid time frame requested: %s", e)
            return ReadResult(400, dict(INVALID_TIME_FRAME))

        if parse_flag(simulate):
            snapshot = snapshot.scaled_cumulative(self.simulate_multiplier)
        return ReadResult(200, snapshot_to_dict(snapshot))

    def get_cache(self) -> ReadResult:
        return ReadResult(200, cache_to_dict(self.store.snapshot_map()))
