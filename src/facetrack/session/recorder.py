from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from facetrack.tracking.result import TrackingResult

logger = logging.getLogger(__name__)


class SessionRecorder:
    """Ordered log of tracking results for the current trial.

    Unbounded unless ``max_entries`` is given, in which case the oldest
    entries are discarded once the cap is reached.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got: {max_entries}")
        self.max_entries = max_entries
        self.recording = False
        self._log: deque[TrackingResult] = deque(maxlen=max_entries)
        self._cap_reported = False

    def reset(self, *, recording: bool) -> None:
        self._log.clear()
        self._cap_reported = False
        self.recording = recording

    def append(self, result: TrackingResult) -> None:
        if self.max_entries is not None and len(self._log) == self.max_entries and not self._cap_reported:
            logger.warning("Tracking log reached %d entries; dropping oldest results", self.max_entries)
            self._cap_reported = True
        self._log.append(result)

    def drain(self) -> list[TrackingResult]:
        log = list(self._log)
        self._log.clear()
        return log

    def __len__(self) -> int:
        return len(self._log)
