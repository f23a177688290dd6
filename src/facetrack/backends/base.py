from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np

from facetrack.config import BackendKind
from facetrack.tracking.result import Blendshape, Landmark

MATRIX_SIZE = 16


@dataclass(frozen=True)
class BackendFrame:
    """Raw per-frame output of a backend, already in facetrack's conventions."""

    transformation: Optional[tuple[float, ...]] = None
    blendshapes: Optional[tuple[Blendshape, ...]] = None
    landmarks: Optional[tuple[Landmark, ...]] = None


ResultHandler = Callable[[int, BackendFrame], None]


def to_column_major_values(source: Any) -> Optional[tuple[float, ...]]:
    """Flatten a MediaPipe matrix container to 16 column-major floats.

    Packed/flat data is already column-major; 4x4 arrays are row-major and
    get transposed.
    """
    if source is None:
        return None
    if not isinstance(source, np.ndarray):
        if hasattr(source, "numpy_view"):
            source = source.numpy_view()
        elif hasattr(source, "packed_data"):
            source = source.packed_data
        elif hasattr(source, "data"):
            source = source.data

    values = np.asarray(source, dtype=np.float64)
    if values.shape == (4, 4):
        values = values.T.reshape(-1)
    elif values.size == MATRIX_SIZE:
        values = values.reshape(-1)
    else:
        return None
    if not np.isfinite(values).all():
        return None
    return tuple(float(v) for v in values)


class FaceTrackingBackend(ABC):
    """Interface for frame-level face geometry inference."""

    kind: BackendKind
    push_style: bool = False
    supports_blendshapes: bool = False

    def __init__(self) -> None:
        self._result_handler: Optional[ResultHandler] = None

    @abstractmethod
    def configure(self) -> None:
        """Create and configure the inference engine. May block on model loading."""

    @abstractmethod
    def detect_on_frame(
        self,
        image: np.ndarray,
        timestamp_ms: int,
        frame_id: int,
    ) -> Optional[BackendFrame]:
        """Run inference on an RGB frame.

        Pull-style backends return the frame directly. Push-style backends
        return ``None`` and report through the result handler later.
        """

    def set_result_handler(self, handler: Optional[ResultHandler]) -> None:
        self._result_handler = handler

    def close(self) -> None:
        """Release engine resources."""
