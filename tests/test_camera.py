from __future__ import annotations

from typing import Any

import cv2
import numpy as np
import pytest

from facetrack.exceptions import CameraUnavailableError
from facetrack.io import camera
from facetrack.io.camera import CameraStream, open_camera_stream


class _FakeCapture:
    def __init__(self, *, opened: bool = True, frame: Any = None) -> None:
        self.opened = opened
        self.frame = frame
        self.released = False
        self.props: dict[int, float] = {}

    def isOpened(self) -> bool:
        return self.opened

    def read(self) -> tuple[bool, Any]:
        return (self.frame is not None, self.frame)

    def get(self, prop: int) -> float:
        return self.props.get(prop, 0.0)

    def set(self, prop: int, value: float) -> bool:
        self.props[prop] = value
        return True

    def release(self) -> None:
        self.released = True


def test_read_rgb_converts_from_bgr() -> None:
    frame_bgr = np.zeros((4, 6, 3), dtype=np.uint8)
    frame_bgr[:, :] = [10, 20, 30]
    stream = CameraStream(device=0, capture=_FakeCapture(frame=frame_bgr))

    image = stream.read_rgb()

    assert stream.is_ready()
    assert image is not None
    assert image.shape == (4, 6, 3)
    assert image[0, 0].tolist() == [30, 20, 10]


def test_read_rgb_returns_none_without_frame() -> None:
    stream = CameraStream(device=0, capture=_FakeCapture(frame=None))

    assert stream.read_rgb() is None


def test_open_camera_stream_raises_when_device_cannot_open(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeCapture(opened=False)
    monkeypatch.setattr(camera.cv2, "VideoCapture", lambda device: fake)

    with pytest.raises(CameraUnavailableError):
        open_camera_stream(3)
    assert fake.released


def test_open_camera_stream_applies_requested_size(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeCapture()
    monkeypatch.setattr(camera.cv2, "VideoCapture", lambda device: fake)

    stream = open_camera_stream(0, width=1280, height=720)

    assert stream.frame_size == (1280, 720)
    assert fake.props[cv2.CAP_PROP_FRAME_WIDTH] == 1280


def test_open_camera_stream_rejects_negative_index() -> None:
    with pytest.raises(ValueError):
        open_camera_stream(-1)
