from __future__ import annotations

from typing import Any, Optional

import numpy as np

from facetrack.backends.base import BackendFrame
from facetrack.backends.tasks import (
    FaceLandmarkerTaskBackend,
    to_blendshapes,
    to_landmarks,
    to_transformation,
)
from facetrack.config import BackendKind


class ModernFaceLandmarkerBackend(FaceLandmarkerTaskBackend):
    """FaceLandmarker task in VIDEO mode, queried synchronously each tick."""

    kind = BackendKind.modern
    push_style = False
    supports_blendshapes = True
    running_mode = "VIDEO"

    def task_options(self) -> dict[str, Any]:
        return {
            "num_faces": 1,
            "output_face_blendshapes": True,
            "output_facial_transformation_matrixes": True,
        }

    def detect_on_frame(
        self,
        image: np.ndarray,
        timestamp_ms: int,
        frame_id: int,
    ) -> Optional[BackendFrame]:
        landmarker, image_factory = self._require_landmarker()
        result = landmarker.detect_for_video(image_factory(image), self._next_timestamp(timestamp_ms))
        return self.to_backend_frame(result)

    @staticmethod
    def to_backend_frame(result: Any) -> BackendFrame:
        return BackendFrame(
            transformation=to_transformation(result),
            blendshapes=to_blendshapes(result),
            landmarks=to_landmarks(result),
        )
