"""Latest-price store shared by the polling loop and readers."""

import threading
from typing import Dict, List, Optional, Tuple

from loguru import logger

from .types import PriceSnapshot, now_ms


class PriceStore:
    """Most recent PriceSnapshot per (venue, pair).

    All reads and writes go through one lock; readers get copies taken in a
    single critical section.
    """

    def __init__(self, staleness_window_ms: int):
        self.staleness_window_ms = staleness_window_ms
        self._snapshots: Dict[Tuple[str, str], PriceSnapshot] = {}
        self._lock = threading.Lock()

    def update(self, snapshot: PriceSnapshot) -> bool:
        """Replace the entry for the snapshot's (venue, pair). Older snapshots are ignored."""
        key = (snapshot.venue, snapshot.pair)
        with self._lock:
            current = self._snapshots.get(key)
            if current is not None and snapshot.observed_at < current.observed_at:
                stale = True
            else:
                self._snapshots[key] = snapshot
                stale = False

        if stale:
            logger.debug(f"Ignoring out-of-order snapshot for {snapshot.venue} {snapshot.pair}")
            return False
        return True

    def is_fresh(self, snapshot: PriceSnapshot, now: Optional[int] = None) -> bool:
        return snapshot.age_ms(now) <= self.staleness_window_ms

    def read_all(self, pair: str, now: Optional[int] = None) -> Dict[str, PriceSnapshot]:
        """Fresh snapshots for a pair, keyed by venue."""
        now = now if now is not None else now_ms()
        with self._lock:
            view = {venue: snap for (venue, p), snap in self._snapshots.items() if p == pair}
        return {venue: snap for venue, snap in view.items() if self.is_fresh(snap, now)}

    def get(self, venue: str, pair: str) -> Optional[PriceSnapshot]:
        with self._lock:
            return self._snapshots.get((venue, pair))

    def snapshot_all(self) -> List[PriceSnapshot]:
        with self._lock:
            return list(self._snapshots.values())
