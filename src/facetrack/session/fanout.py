from __future__ import annotations

import logging
from typing import Callable

from facetrack.tracking.result import TrackingResult

logger = logging.getLogger(__name__)

ResultListener = Callable[[TrackingResult], None]


class ResultFanout:
    """Synchronous delivery of each result to every registered listener.

    Listeners are keyed by identity and called in registration order. A
    failing listener is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[ResultListener, ResultListener] = {}

    def add(self, listener: ResultListener) -> None:
        self._listeners.setdefault(listener, listener)

    def remove(self, listener: ResultListener) -> None:
        self._listeners.pop(listener, None)

    def deliver(self, result: TrackingResult) -> int:
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Tracking result listener %r failed on frame %d", listener, result.frame_id)
                continue
            delivered += 1
        return delivered

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def __len__(self) -> int:
        return len(self._listeners)
