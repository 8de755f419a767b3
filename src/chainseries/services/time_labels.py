from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

from chainseries.core.models import SECONDS_PER_DAY, TimeFrameConfig

LABEL_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_label(ts: datetime) -> str:
    return ts.strftime(LABEL_FORMAT)


def trailing_window_labels(total_days: int, interval_count: int, now: datetime) -> List[str]:
    """`interval_count + 1` evenly spaced labels ending at `now`, oldest first."""
    step = timedelta(seconds=total_days * SECONDS_PER_DAY / interval_count)
    return [format_label(now - i * step) for i in range(interval_count, -1, -1)]


def anchored_window_labels(start: datetime, end: datetime, interval_count: int) -> List[str]:
    step = (end - start) / interval_count
    return [format_label(start + i * step) for i in range(interval_count + 1)]


def labels_for(cfg: TimeFrameConfig, now: datetime) -> List[str]:
    if cfg.start_anchor is not None:
        return anchored_window_labels(cfg.start_anchor, now, cfg.interval_count)
    return trailing_window_labels(cfg.total_days, cfg.interval_count, now)
