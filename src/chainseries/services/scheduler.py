import logging
import threading
from typing import Optional

from chainseries.services.cache_store import CacheStore

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Calls `store.refresh()` now and then every `interval` seconds."""

    def __init__(self, store: CacheStore, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._store = store
        self._interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="cache-refresh", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def tick(self) -> None:
        try:
            self._store.refresh()
        except Exception:
            logger.exception("cache refresh failed")

    def _run(self) -> None:
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(self._interval)
