from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import numpy as np
import pytest

from facetrack.backends.base import BackendFrame, FaceTrackingBackend
from facetrack.config import BackendKind
from facetrack.scheduler import FrameScheduler, PushResultSlot, SchedulerState


class _Handle:
    def __init__(self, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _ManualLoop:
    """Stand-in event loop that runs scheduled callbacks only when asked."""

    def __init__(self) -> None:
        self.scheduled: list[_Handle] = []
        self.closed = False

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> _Handle:
        return self.call_later(0.0, callback, *args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _Handle:
        handle = _Handle(callback, args)
        self.scheduled.append(handle)
        return handle

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> _Handle:
        if self.closed:
            raise RuntimeError("Event loop is closed")
        return self.call_soon(callback, *args)

    def active(self) -> list[_Handle]:
        return [handle for handle in self.scheduled if not handle.cancelled]

    def run_once(self) -> None:
        pending, self.scheduled = self.scheduled, []
        for handle in pending:
            if not handle.cancelled:
                handle.callback(*handle.args)


class _Stream:
    def __init__(self, *, ready: bool = True, shape: tuple[int, int, int] = (48, 64, 3)) -> None:
        self.ready = ready
        self.shape = shape

    def is_ready(self) -> bool:
        return self.ready

    def read_rgb(self) -> Optional[np.ndarray]:
        return np.full(self.shape, 200, dtype=np.uint8)


class _PullBackend(FaceTrackingBackend):
    kind = BackendKind.modern

    def __init__(self, *, fail_first: bool = False) -> None:
        super().__init__()
        self.calls: list[tuple[int, tuple[int, ...], int]] = []
        self.images: list[np.ndarray] = []
        self.fail_first = fail_first

    def configure(self) -> None:
        pass

    def detect_on_frame(self, image: np.ndarray, timestamp_ms: int, frame_id: int) -> Optional[BackendFrame]:
        self.calls.append((frame_id, image.shape, timestamp_ms))
        self.images.append(image)
        if self.fail_first and len(self.calls) == 1:
            raise RuntimeError("inference crashed")
        return BackendFrame()


class _PushBackend(_PullBackend):
    kind = BackendKind.legacy
    push_style = True

    def detect_on_frame(self, image: np.ndarray, timestamp_ms: int, frame_id: int) -> Optional[BackendFrame]:
        super().detect_on_frame(image, timestamp_ms, frame_id)
        return None


def _make_scheduler(backend: FaceTrackingBackend, loop: _ManualLoop) -> tuple[FrameScheduler, list[int]]:
    frames: list[int] = []
    scheduler = FrameScheduler(
        backend,
        lambda frame_id, frame: frames.append(frame_id),
        loop=loop,
        clock=lambda: 12.5,
    )
    return scheduler, frames


def test_start_without_stream_stays_idle(caplog: pytest.LogCaptureFixture) -> None:
    loop = _ManualLoop()
    scheduler, _ = _make_scheduler(_PullBackend(), loop)

    with caplog.at_level(logging.WARNING, logger="facetrack.scheduler"):
        started = scheduler.start(None)

    assert started is False
    assert scheduler.state is SchedulerState.idle
    assert loop.scheduled == []
    assert "Camera not initialized." in caplog.text


def test_loop_waits_for_stream_then_draws_fixed_canvas() -> None:
    loop = _ManualLoop()
    backend = _PullBackend()
    scheduler, frames = _make_scheduler(backend, loop)
    stream = _Stream(ready=False)

    assert scheduler.start(stream)
    loop.run_once()
    loop.run_once()
    assert backend.calls == []

    stream.ready = True
    loop.run_once()
    loop.run_once()
    loop.run_once()

    assert [call[0] for call in backend.calls] == [1, 2]
    assert backend.calls[0][1] == (720, 1280, 3)
    assert backend.calls[0][2] == 12500
    assert frames == [1, 2]
    assert int(scheduler.canvas[0, 0, 0]) == 200
    assert len(loop.active()) == 1


def test_restart_cancels_previous_loop() -> None:
    loop = _ManualLoop()
    backend = _PullBackend()
    scheduler, _ = _make_scheduler(backend, loop)
    stream = _Stream()

    scheduler.start(stream)
    loop.run_once()
    first_canvas = scheduler.canvas
    scheduler.start(stream)

    assert len(loop.active()) == 1
    assert scheduler.canvas is not first_canvas

    for _ in range(4):
        loop.run_once()
        assert len(loop.active()) == 1

    frame_ids = [call[0] for call in backend.calls]
    assert frame_ids == sorted(set(frame_ids))


def test_stop_is_idempotent_and_cancels_next_tick() -> None:
    loop = _ManualLoop()
    backend = _PullBackend()
    scheduler, _ = _make_scheduler(backend, loop)

    scheduler.start(_Stream())
    loop.run_once()
    scheduler.stop()
    scheduler.stop()
    loop.run_once()

    assert backend.calls == []
    assert scheduler.state is SchedulerState.idle
    assert loop.active() == []


def test_backend_failure_is_logged_and_loop_continues(caplog: pytest.LogCaptureFixture) -> None:
    loop = _ManualLoop()
    backend = _PullBackend(fail_first=True)
    scheduler, frames = _make_scheduler(backend, loop)

    scheduler.start(_Stream())
    with caplog.at_level(logging.ERROR, logger="facetrack.scheduler"):
        for _ in range(3):
            loop.run_once()

    assert [call[0] for call in backend.calls] == [1, 2]
    assert frames == [2]
    assert "Backend detection failed on frame 1" in caplog.text


def test_push_backend_receives_snapshot_of_canvas() -> None:
    loop = _ManualLoop()
    backend = _PushBackend()
    scheduler, frames = _make_scheduler(backend, loop)

    scheduler.start(_Stream(shape=(720, 1280, 3)))
    loop.run_once()
    loop.run_once()

    assert len(backend.images) == 1
    assert backend.images[0] is not scheduler.canvas
    assert np.array_equal(backend.images[0], scheduler.canvas)
    assert frames == []


def test_push_slot_keeps_only_latest_pending_message() -> None:
    loop = _ManualLoop()
    received: list[int] = []
    slot = PushResultSlot(loop, lambda frame_id, frame: received.append(frame_id))

    slot.post(1, BackendFrame())
    slot.post(2, BackendFrame())
    assert len(loop.scheduled) == 1
    loop.run_once()
    slot.post(3, BackendFrame())
    loop.run_once()

    assert received == [2, 3]


def test_push_slot_discards_results_after_loop_closed() -> None:
    loop = _ManualLoop()
    loop.closed = True
    received: list[int] = []
    slot = PushResultSlot(loop, lambda frame_id, frame: received.append(frame_id))

    slot.post(1, BackendFrame())

    assert received == []


def test_rejects_non_positive_refresh_rate() -> None:
    with pytest.raises(ValueError):
        FrameScheduler(_PullBackend(), lambda frame_id, frame: None, refresh_hz=0)


def test_stream_read_failure_is_logged_and_loop_continues(caplog: pytest.LogCaptureFixture) -> None:
    class _FlakyStream(_Stream):
        reads = 0

        def read_rgb(self) -> Optional[np.ndarray]:
            self.reads += 1
            if self.reads == 1:
                raise OSError("camera unplugged")
            return super().read_rgb()

    loop = _ManualLoop()
    backend = _PullBackend()
    scheduler, frames = _make_scheduler(backend, loop)

    scheduler.start(_FlakyStream())
    with caplog.at_level(logging.ERROR, logger="facetrack.scheduler"):
        for _ in range(3):
            loop.run_once()

    assert "Reading camera frame 1 failed" in caplog.text
    assert frames == [2]
    assert len(loop.active()) == 1


def test_draw_before_start_raises() -> None:
    scheduler, _ = _make_scheduler(_PullBackend(), _ManualLoop())

    with pytest.raises(RuntimeError, match="start"):
        scheduler._draw(np.zeros((2, 2, 3), dtype=np.uint8))


def test_push_slot_recovers_after_failed_handoff() -> None:
    loop = _ManualLoop()
    received: list[int] = []
    slot = PushResultSlot(loop, lambda frame_id, frame: received.append(frame_id))

    loop.closed = True
    slot.post(1, BackendFrame())
    loop.closed = False
    slot.post(2, BackendFrame())
    loop.run_once()

    assert received == [2]
