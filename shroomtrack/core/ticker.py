import logging
import threading
from typing import Callable, Dict, List, Optional
from ..models.api_models import BatchCard
from ..utils.constants import FLOOR_TICK_SECONDS

logger = logging.getLogger(__name__)


class FloorTicker:
    """
    Re-derives the processing floor on a recurring schedule and pushes the
    batch cards to subscribers. Stage changes are logged as they are seen.
    """

    def __init__(self, processing, interval_seconds: float = FLOOR_TICK_SECONDS):
        self._processing = processing
        self._interval = interval_seconds
        self._subscribers: List[Callable[[List[BatchCard]], None]] = []
        self._stages: Dict[str, Optional[str]] = {}
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, callback: Callable[[List[BatchCard]], None]) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[List[BatchCard]], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def tick(self) -> List[BatchCard]:
        cards = self._processing.floor().batches
        current = {card.batch.id: card.stage for card in cards}
        for batch_id, stage in current.items():
            previous = self._stages.get(batch_id)
            if batch_id in self._stages and previous != stage:
                logger.info("Batch %s moved %s -> %s", batch_id, previous, stage)
        self._stages = current
        self._notify(cards)
        return cards

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()

        def _run():
            while not self._stop.wait(self._interval):
                try:
                    self.tick()
                except Exception:
                    logger.exception("Floor tick failed")

        self._thread = threading.Thread(target=_run, name="floor-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _notify(self, cards: List[BatchCard]) -> None:
        failed = []
        for callback in self._subscribers:
            try:
                callback(cards)
            except Exception as e:
                logger.warning("Subscriber callback failed: %s", e)
                failed.append(callback)

        # Remove failed callbacks to prevent repeated errors
        for callback in failed:
            self.unsubscribe(callback)
