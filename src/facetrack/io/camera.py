from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Union

import cv2
import numpy as np

from facetrack.exceptions import CameraUnavailableError


class MediaStream(Protocol):
    """Live frame source handed to the frame scheduler by the host."""

    def is_ready(self) -> bool: ...

    def read_rgb(self) -> Optional[np.ndarray]: ...


@dataclass
class CameraStream:
    device: Union[int, str]
    capture: cv2.VideoCapture

    def is_ready(self) -> bool:
        return bool(self.capture.isOpened())

    def read_rgb(self) -> Optional[np.ndarray]:
        ok, image = self.capture.read()
        if not ok or image is None:
            return None
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    @property
    def frame_size(self) -> tuple[int, int]:
        return (
            int(self.capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self.capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def release(self) -> None:
        self.capture.release()


def open_camera_stream(
    device: Union[int, str] = 0,
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> CameraStream:
    if isinstance(device, int) and device < 0:
        raise ValueError(f"camera index must be >= 0, got: {device}")

    cap = cv2.VideoCapture(device)
    if not cap.isOpened():
        cap.release()
        raise CameraUnavailableError(f"Failed to open camera with OpenCV: {device}")

    if width is not None:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    if height is not None:
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    return CameraStream(device=device, capture=cap)
