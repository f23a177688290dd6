"""Refresh-driven capture -> infer loop on an asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

import cv2
import numpy as np

from facetrack.backends.base import BackendFrame, FaceTrackingBackend
from facetrack.config import CANVAS_HEIGHT, CANVAS_WIDTH, DEFAULT_REFRESH_HZ
from facetrack.io.camera import MediaStream

logger = logging.getLogger(__name__)

FrameConsumer = Callable[[int, BackendFrame], None]


class SchedulerState(str, Enum):
    idle = "idle"
    capturing = "capturing"


class PushResultSlot:
    """Single-slot channel from a push-style backend thread to the event loop.

    A message posted while the previous one is still pending replaces it.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, consumer: FrameConsumer) -> None:
        self._loop = loop
        self._consumer = consumer
        self._lock = threading.Lock()
        self._pending: Optional[tuple[int, BackendFrame]] = None

    def post(self, frame_id: int, frame: BackendFrame) -> None:
        with self._lock:
            schedule_drain = self._pending is None
            if not schedule_drain:
                logger.debug("Replacing unconsumed result for frame %d", self._pending[0])
            self._pending = (frame_id, frame)
        if not schedule_drain:
            return
        try:
            self._loop.call_soon_threadsafe(self._drain)
        except RuntimeError:
            with self._lock:
                self._pending = None
            logger.debug("Event loop closed; discarding result for frame %d", frame_id)

    def _drain(self) -> None:
        with self._lock:
            message, self._pending = self._pending, None
        if message is not None:
            self._consumer(*message)


class FrameScheduler:
    """Owns the raster surface and drives one backend at the refresh rate.

    ``start`` while capturing cancels the previous loop first, so at most one
    tick is ever scheduled. ``stop`` only cancels the next scheduled tick; a
    push-style backend may still report frames it already received.
    """

    def __init__(
        self,
        backend: FaceTrackingBackend,
        on_frame: FrameConsumer,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        refresh_hz: float = DEFAULT_REFRESH_HZ,
        canvas_size: tuple[int, int] = (CANVAS_WIDTH, CANVAS_HEIGHT),
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        if refresh_hz <= 0:
            raise ValueError(f"refresh_hz must be > 0, got: {refresh_hz}")
        self.backend = backend
        self._on_frame = on_frame
        self._loop = loop
        self._interval = 1.0 / refresh_hz
        self._canvas_size = canvas_size
        self._clock = clock

        self._state = SchedulerState.idle
        self._handle: Optional[asyncio.Handle] = None
        self._canvas: Optional[np.ndarray] = None
        self._media_stream: Optional[MediaStream] = None
        self._last_frame_id = 0
        self.ticks = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state is SchedulerState.capturing

    @property
    def media_stream(self) -> Optional[MediaStream]:
        return self._media_stream

    @property
    def frame_id(self) -> int:
        """Id of the most recently requested tick."""
        return self._last_frame_id

    @property
    def canvas(self) -> Optional[np.ndarray]:
        return self._canvas

    def start(self, media_stream: Optional[MediaStream]) -> bool:
        self.stop()
        width, height = self._canvas_size
        self._canvas = np.zeros((height, width, 3), dtype=np.uint8)
        self._media_stream = media_stream

        if media_stream is None:
            logger.warning("Camera not initialized.")
            return False

        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._state = SchedulerState.capturing
        self._handle = self._loop.call_soon(self._wait_for_stream)
        return True

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._state = SchedulerState.idle

    def _wait_for_stream(self) -> None:
        self._handle = None
        if not self.is_capturing or self._media_stream is None:
            return
        if self._media_stream.is_ready():
            self._request_tick()
            return
        self._handle = self._loop.call_later(self._interval, self._wait_for_stream)

    def _request_tick(self) -> None:
        self._last_frame_id += 1
        self._handle = self._loop.call_later(self._interval, self._tick, self._last_frame_id)

    def _draw(self, image: np.ndarray) -> np.ndarray:
        if self._canvas is None:
            raise RuntimeError("Frame scheduler has no canvas; call start() first")
        height, width = self._canvas.shape[:2]
        if image.shape[:2] != (height, width):
            image = cv2.resize(image, (width, height), interpolation=cv2.INTER_LINEAR)
        np.copyto(self._canvas, image[:, :, :3])
        return self._canvas

    def _tick(self, frame_id: int) -> None:
        self._handle = None
        if not self.is_capturing or self._media_stream is None:
            return

        try:
            image = self._media_stream.read_rgb()
        except Exception:
            logger.exception("Reading camera frame %d failed", frame_id)
            image = None
        if image is not None:
            self.ticks += 1
            raster = self._draw(image)
            if self.backend.push_style:
                raster = raster.copy()
            timestamp_ms = int(self._clock() * 1000)
            try:
                frame = self.backend.detect_on_frame(raster, timestamp_ms, frame_id)
            except Exception:
                logger.exception("Backend detection failed on frame %d", frame_id)
                frame = None
            if frame is not None:
                self._on_frame(frame_id, frame)

        if self.is_capturing and self._handle is None:
            self._request_tick()
