from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np

from facetrack.backends.base import FaceTrackingBackend, to_column_major_values
from facetrack.exceptions import BackendInitializationError
from facetrack.landmarks.model_assets import import_mediapipe, resolve_model_asset
from facetrack.tracking.result import Blendshape, Landmark

logger = logging.getLogger(__name__)


def to_blendshapes(result: Any) -> Optional[tuple[Blendshape, ...]]:
    if not getattr(result, "face_blendshapes", None):
        return None
    first = result.face_blendshapes[0]
    categories = getattr(first, "categories", first)
    if categories is None:
        return None

    shapes: list[Blendshape] = []
    for category in categories:
        name = getattr(category, "category_name", None) or getattr(category, "categoryName", None)
        score = getattr(category, "score", None)
        if name is None or score is None:
            continue
        shapes.append(Blendshape(name=str(name), score=float(score)))
    return tuple(shapes)


def to_landmarks(result: Any) -> Optional[tuple[Landmark, ...]]:
    faces = getattr(result, "face_landmarks", None)
    if not faces:
        return None
    return tuple((float(lm.x), float(lm.y), float(lm.z)) for lm in faces[0])


def to_transformation(result: Any) -> Optional[tuple[float, ...]]:
    transforms = getattr(result, "facial_transformation_matrixes", None)
    if not transforms:
        return None
    return to_column_major_values(transforms[0])


class FaceLandmarkerTaskBackend(FaceTrackingBackend):
    """Shared setup for backends built on the MediaPipe Tasks FaceLandmarker.

    Subclasses pick the running mode and the task options. An injected
    ``landmarker_factory`` receives those task options as keyword arguments
    instead of MediaPipe building the task.
    """

    running_mode: str

    def __init__(
        self,
        *,
        model_asset: Optional[str | Path] = None,
        cache_dir: Optional[str | Path] = None,
        use_gpu_delegate: bool = False,
        landmarker_factory: Optional[Callable[..., Any]] = None,
        image_factory: Optional[Callable[[np.ndarray], Any]] = None,
    ) -> None:
        super().__init__()
        self.model_asset = model_asset
        self.cache_dir = cache_dir
        self.use_gpu_delegate = use_gpu_delegate
        self._landmarker_factory = landmarker_factory
        self._image_factory = image_factory
        self._landmarker: Any = None
        self._last_timestamp_ms = -1

    def task_options(self) -> dict[str, Any]:
        raise NotImplementedError

    def configure(self) -> None:
        task_options = self.task_options()
        if self._landmarker_factory is not None:
            try:
                self._landmarker = self._landmarker_factory(**task_options)
            except Exception as exc:
                raise BackendInitializationError(f"FaceLandmarker initialization failed: {exc}") from exc
            if self._image_factory is None:
                self._image_factory = np.ascontiguousarray
            return

        model_file = resolve_model_asset(self.model_asset, cache_dir=self.cache_dir)
        mp = import_mediapipe()
        base_options_kwargs: dict[str, Any] = {"model_asset_path": str(model_file)}
        if self.use_gpu_delegate:
            base_options_kwargs["delegate"] = mp.tasks.BaseOptions.Delegate.GPU
        options = mp.tasks.vision.FaceLandmarkerOptions(
            base_options=mp.tasks.BaseOptions(**base_options_kwargs),
            running_mode=getattr(mp.tasks.vision.RunningMode, self.running_mode),
            **task_options,
        )
        try:
            self._landmarker = mp.tasks.vision.FaceLandmarker.create_from_options(options)
        except Exception as exc:
            raise BackendInitializationError(f"FaceLandmarker initialization failed: {exc}") from exc

        if self._image_factory is None:
            self._image_factory = lambda image: mp.Image(
                image_format=mp.ImageFormat.SRGB,
                data=np.ascontiguousarray(image),
            )
        logger.debug("FaceLandmarker (%s) created from %s", self.running_mode, model_file)

    def _next_timestamp(self, timestamp_ms: int) -> int:
        # VIDEO and LIVE_STREAM modes reject timestamps that do not strictly increase.
        timestamp = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp
        return timestamp

    def _require_landmarker(self) -> tuple[Any, Callable[[np.ndarray], Any]]:
        if self._landmarker is None or self._image_factory is None:
            raise RuntimeError(f"FaceLandmarker {self.running_mode} backend not initialized")
        return self._landmarker, self._image_factory

    def close(self) -> None:
        landmarker, self._landmarker = self._landmarker, None
        if landmarker is not None and hasattr(landmarker, "close"):
            landmarker.close()
