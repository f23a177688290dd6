from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Mapping, Optional

from facetrack.backends.base import BackendFrame, FaceTrackingBackend
from facetrack.backends.selection import create_backend
from facetrack.config import (
    RecordingOptions,
    StaleResultPolicy,
    TrackerOptions,
    coerce_recording_options,
    coerce_tracker_options,
)
from facetrack.exceptions import BackendInitializationError
from facetrack.io.camera import MediaStream
from facetrack.scheduler import FrameScheduler, PushResultSlot
from facetrack.session.fanout import ResultFanout, ResultListener
from facetrack.session.recorder import SessionRecorder
from facetrack.session.state import SessionState
from facetrack.tracking.normalize import build_tracking_result
from facetrack.tracking.result import TrackingResult

logger = logging.getLogger(__name__)

StreamProvider = Callable[[], Optional[MediaStream]]
BackendFactory = Callable[[TrackerOptions], FaceTrackingBackend]


class FaceTrackingController:
    """Lifecycle hooks driven by the host experiment runner.

    Order per session: ``initialize`` once, then per trial ``start``,
    ``configure_recording`` and ``finish``. All hooks except ``initialize``
    must be called from the event loop thread that ran ``initialize``.
    """

    def __init__(
        self,
        stream_provider: StreamProvider,
        *,
        backend_factory: BackendFactory = create_backend,
    ) -> None:
        self._stream_provider = stream_provider
        self._backend_factory = backend_factory
        self._fanout = ResultFanout()
        self._session: Optional[SessionState] = None
        self._scheduler: Optional[FrameScheduler] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def session(self) -> Optional[SessionState]:
        return self._session

    @property
    def scheduler(self) -> Optional[FrameScheduler]:
        return self._scheduler

    @property
    def active_media_stream(self) -> Optional[MediaStream]:
        if self._scheduler is None:
            return None
        return self._scheduler.media_stream

    async def initialize(
        self,
        options: TrackerOptions | Mapping[str, Any] | None = None,
    ) -> SessionState:
        tracker_options = coerce_tracker_options(options)
        logger.info("Initializing face tracking: %s", tracker_options.as_summary())

        loop = asyncio.get_running_loop()
        backend: Optional[FaceTrackingBackend] = None
        abandoned = threading.Event()
        try:
            backend = self._backend_factory(tracker_options)
            await asyncio.wait_for(
                loop.run_in_executor(None, self._configure_backend, backend, abandoned),
                timeout=tracker_options.init_timeout_s,
            )
        except Exception as exc:
            abandoned.set()
            if backend is not None:
                self._release_backend(backend)
            if isinstance(exc, BackendInitializationError):
                raise
            if isinstance(exc, asyncio.TimeoutError):
                raise BackendInitializationError(
                    f"{tracker_options.backend.value} backend initialization timed out "
                    f"after {tracker_options.init_timeout_s:g}s"
                ) from exc
            raise BackendInitializationError(
                f"{tracker_options.backend.value} backend initialization failed: {exc}"
            ) from exc

        self._loop = loop
        self._session = SessionState(
            options=tracker_options,
            backend=backend,
            recorder=SessionRecorder(max_entries=tracker_options.max_log_entries),
        )
        self._scheduler = FrameScheduler(
            backend,
            self._on_backend_frame,
            loop=loop,
            refresh_hz=tracker_options.refresh_hz,
        )
        logger.info("Face tracking ready with %s backend", backend.kind.value)
        return self._session

    @classmethod
    def _configure_backend(cls, backend: FaceTrackingBackend, abandoned: threading.Event) -> None:
        backend.configure()
        # initialize() gave up while this was still loading; release what was built.
        if abandoned.is_set():
            cls._release_backend(backend)

    @staticmethod
    def _release_backend(backend: FaceTrackingBackend) -> None:
        try:
            backend.close()
        except Exception:
            logger.warning("Closing %s backend after failed initialization raised", backend.kind.value, exc_info=True)

    def _require_session(self) -> tuple[SessionState, FrameScheduler]:
        if self._session is None or self._scheduler is None or self._loop is None:
            raise RuntimeError("initialize() must complete before start()")
        return self._session, self._scheduler

    def start(self) -> bool:
        """Begin capturing. Returns ``False`` when no camera stream is available."""
        session, scheduler = self._require_session()
        if session.backend.push_style:
            slot = PushResultSlot(self._loop, self._on_pushed_frame)
            session.backend.set_result_handler(slot.post)
        return scheduler.start(self._stream_provider())

    def configure_recording(
        self,
        options: RecordingOptions | Mapping[str, Any] | None = None,
    ) -> None:
        recording_options = coerce_recording_options(options)
        if self._session is None:
            logger.warning("configure_recording() called before initialize(); ignoring")
            return
        self._session.recorder.reset(recording=recording_options.record)

    def finish(self) -> dict[str, list[TrackingResult]]:
        if self._scheduler is not None:
            self._scheduler.stop()
        if self._session is None:
            return {"tracking_log": []}

        self._session.recorder.recording = False
        log = self._session.recorder.drain()
        logger.info("Tracked chunks: %d", len(log))
        return {"tracking_log": log}

    def register_result_listener(self, listener: ResultListener) -> None:
        self._fanout.add(listener)

    def unregister_result_listener(self, listener: ResultListener) -> None:
        self._fanout.remove(listener)

    def close(self) -> None:
        """Tear the session down: stop capture and release the backend."""
        if self._scheduler is not None:
            self._scheduler.stop()
        session, self._session = self._session, None
        self._scheduler = None
        if session is not None:
            session.backend.set_result_handler(None)
            session.backend.close()

    def _on_pushed_frame(self, frame_id: int, frame: BackendFrame) -> None:
        session = self._session
        if session is None:
            logger.debug("Session torn down; ignoring pushed result for frame %d", frame_id)
            return
        scheduler_idle = self._scheduler is None or not self._scheduler.is_capturing
        if scheduler_idle and session.options.stale_result_policy is StaleResultPolicy.drop:
            logger.debug("Dropping result for frame %d that arrived after stop", frame_id)
            return
        self._on_backend_frame(frame_id, frame)

    def _on_backend_frame(self, frame_id: int, frame: BackendFrame) -> None:
        session = self._session
        if session is None:
            return
        try:
            result = build_tracking_result(
                frame_id,
                frame,
                include_face_details=session.include_face_details,
            )
        except ValueError as exc:
            logger.warning("Skipping frame %d with unusable transform: %s", frame_id, exc)
            return
        if session.recorder.recording:
            session.recorder.append(result)
        self._fanout.deliver(result)
