from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import numpy as np

from facetrack.backends.base import BackendFrame
from facetrack.backends.tasks import FaceLandmarkerTaskBackend, to_transformation
from facetrack.config import BackendKind

logger = logging.getLogger(__name__)

LIVE_STREAM_OPTIONS: dict[str, Any] = {
    "num_faces": 1,
    "min_face_detection_confidence": 0.5,
    "min_tracking_confidence": 0.5,
    "output_face_blendshapes": False,
    "output_facial_transformation_matrixes": True,
}


class LegacyLiveStreamBackend(FaceLandmarkerTaskBackend):
    """FaceLandmarker task in LIVE_STREAM mode, fed fire-and-forget.

    ``detect_async`` returns at once and MediaPipe reports on its own thread
    through ``result_callback``. The engine may skip frames while busy, so
    submissions are matched to results by timestamp. Only results that carry
    a transformation matrix reach the result handler.
    """

    kind = BackendKind.legacy
    push_style = True
    supports_blendshapes = False
    running_mode = "LIVE_STREAM"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._lock = threading.Lock()
        self._submitted: dict[int, int] = {}
        self._closed = False

    def task_options(self) -> dict[str, Any]:
        return {**LIVE_STREAM_OPTIONS, "result_callback": self._on_result}

    def configure(self) -> None:
        with self._lock:
            self._closed = False
            self._submitted.clear()
        super().configure()

    def detect_on_frame(
        self,
        image: np.ndarray,
        timestamp_ms: int,
        frame_id: int,
    ) -> Optional[BackendFrame]:
        landmarker, image_factory = self._require_landmarker()
        timestamp = self._next_timestamp(timestamp_ms)
        with self._lock:
            self._submitted[timestamp] = frame_id
        landmarker.detect_async(image_factory(image), timestamp)
        return None

    def _on_result(self, result: Any, output_image: Any, timestamp_ms: int) -> None:
        with self._lock:
            if self._closed:
                return
            frame_id = self._submitted.pop(timestamp_ms, None)
            # Frames the engine skipped never get a callback.
            for skipped in [ts for ts in self._submitted if ts < timestamp_ms]:
                del self._submitted[skipped]
            handler = self._result_handler

        if frame_id is None:
            logger.debug("No submitted frame for result at %d ms", timestamp_ms)
            return
        frame = self.to_backend_frame(result)
        if frame is None or handler is None:
            return
        handler(frame_id, frame)

    @staticmethod
    def to_backend_frame(result: Any) -> Optional[BackendFrame]:
        transformation = to_transformation(result)
        if transformation is None:
            return None
        return BackendFrame(transformation=transformation)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._submitted.clear()
        # Closing the task waits for the graph to finish in-flight frames.
        super().close()
