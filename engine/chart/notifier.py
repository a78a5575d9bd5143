"""
Change Notifier

Fans candle updates out to synchronous subscribers.
"""

import logging
from typing import Callable, List

from .candle import Candle

logger = logging.getLogger(__name__)

Observer = Callable[[Candle], None]


class ChangeNotifier:
    """
    Ordered list of candle observers.

    Subscribers run in registration order on the caller's task. A failing
    subscriber is logged and skipped; the remaining ones still run.
    """

    def __init__(self):
        self._observers: List[Observer] = []

    def __len__(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Observer) -> None:
        if not callable(observer):
            raise TypeError(f"Observer must be callable, got {observer!r}")
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> bool:
        """Remove an observer; returns False if it was not subscribed"""
        try:
            self._observers.remove(observer)
        except ValueError:
            return False
        return True

    def notify(self, candle: Candle) -> None:
        for observer in list(self._observers):
            try:
                observer(candle)
            except Exception as e:
                logger.error(
                    f"Observer {observer!r} failed for candle "
                    f"{candle.bucket_start.isoformat()}: {e}",
                    exc_info=True,
                )
