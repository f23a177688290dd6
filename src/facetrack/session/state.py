from __future__ import annotations

from dataclasses import dataclass, field

from facetrack.backends.base import FaceTrackingBackend
from facetrack.config import BackendKind, TrackerOptions
from facetrack.session.recorder import SessionRecorder


@dataclass
class SessionState:
    """Per-session state created by ``initialize`` and dropped on teardown."""

    options: TrackerOptions
    backend: FaceTrackingBackend
    recorder: SessionRecorder = field(default_factory=SessionRecorder)

    @property
    def active_backend(self) -> BackendKind:
        return self.backend.kind

    @property
    def full_tracking(self) -> bool:
        return self.options.use_full_tracking

    @property
    def include_face_details(self) -> bool:
        return self.full_tracking and self.backend.supports_blendshapes

    @property
    def recording(self) -> bool:
        return self.recorder.recording
