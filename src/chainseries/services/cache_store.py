from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from chainseries.core.errors import InvalidTimeFrame, SeriesError, SnapshotNotReady
from chainseries.core.models import (
    CacheSnapshot,
    TimeFrameConfig,
    TimeFrameKey,
    build_time_frame,
)
from chainseries.services.series_generator import SeriesGenerator

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = 1800.0   # 30 minutes

TimeFrameFactory = Callable[[TimeFrameKey, datetime], TimeFrameConfig]


class CacheStore:
    """
    One immutable snapshot per time-frame key.

    Readers only ever see a fully built snapshot: each refreshed key is
    published by swapping the whole mapping, never by mutating it. A key
    that fails to refresh keeps its previous snapshot.
    """

    def __init__(
        self,
        generator: SeriesGenerator,
        time_frames: TimeFrameFactory = build_time_frame,
        freshness_window: float = DEFAULT_FRESHNESS_WINDOW,
        clock: Callable[[], float] = time.time,
        keys: Optional[List[TimeFrameKey]] = None,
    ) -> None:
        self.generator = generator
        self._time_frames = time_frames
        self._window = freshness_window
        self._clock = clock
        self._keys = list(keys or TimeFrameKey)
        self._snapshots: Dict[TimeFrameKey, Optional[CacheSnapshot]] = {k: None for k in self._keys}
        self._last_refresh_at: Optional[float] = None
        self._guard = threading.Lock()

    @property
    def keys(self) -> List[TimeFrameKey]:
        return list(self._keys)

    @property
    def last_refresh_at(self) -> Optional[float]:
        return self._last_refresh_at

    @property
    def freshness_window(self) -> float:
        return self._window

    def is_fresh(self, now: Optional[float] = None) -> bool:
        if self._last_refresh_at is None:
            return False
        now = self._clock() if now is None else now
        return now - self._last_refresh_at < self._window

    # -------------------------
    # Refresh
    # -------------------------

    def refresh(self, force: bool = False) -> bool:
        """
        Run one refresh attempt unless the cache is still fresh.

        Returns False when skipped. The attempt timestamp is taken before any
        upstream call, so a failing attempt is not retried before the next
        window.
        """
        with self._guard:
            now = self._clock()
            if not force and self.is_fresh(now):
                logger.info("cache is up to date, skipping refresh")
                return False
            self._last_refresh_at = now

        gen = self.generator
        chain = gen.chain
        try:
            current_block = chain.get_current_block_height()
            current_balance = chain.get_balance_at_block(gen.tracked_address, "latest")
            transactions = chain.get_internal_transactions(gen.contract_address, gen.tracked_address)
        except SeriesError as e:
            logger.error("refresh aborted, keeping previous snapshots: %s", e)
            return True

        logger.info(
            "refreshing %d time frame(s) at block %d (%d internal tx)",
            len(self._keys), current_block, len(transactions),
        )
        as_of = gen.clock()

        updated = 0
        for key in self._keys:
            try:
                cfg = self._time_frames(key, as_of)
                snapshot = gen.generate(cfg, current_block, current_balance, transactions)
            except SeriesError as e:
                logger.error("time frame %s not refreshed: %s", key.value, e)
                continue
            self._publish(key, snapshot)
            updated += 1

        logger.info("cache updated: %d/%d time frame(s)", updated, len(self._keys))
        return True

    def _publish(self, key: TimeFrameKey, snapshot: CacheSnapshot) -> None:
        snapshots = dict(self._snapshots)
        snapshots[key] = snapshot
        self._snapshots = snapshots

    # -------------------------
    # Reads
    # -------------------------

    def get(self, key: Union[str, TimeFrameKey]) -> CacheSnapshot:
        k = TimeFrameKey.parse(key)
        snapshots = self._snapshots
        if k not in snapshots:
            raise InvalidTimeFrame(f"Time frame not configured: {k.value}")
        snapshot = snapshots[k]
        if snapshot is None:
            raise SnapshotNotReady(f"No data yet for time frame {k.value}")
        return snapshot

    def snapshot_map(self) -> Dict[TimeFrameKey, Optional[CacheSnapshot]]:
        return dict(self._snapshots)
