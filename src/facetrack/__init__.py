"""Live face geometry tracking sessions on top of MediaPipe."""

from facetrack.config import RecordingOptions, TrackerOptions
from facetrack.controller import FaceTrackingController
from facetrack.exceptions import BackendInitializationError, CameraUnavailableError, FaceTrackError
from facetrack.tracking.result import Blendshape, Euler, TrackingResult, Vector3
from facetrack.tracking.transform import decompose_transform

__all__ = [
    "BackendInitializationError",
    "Blendshape",
    "CameraUnavailableError",
    "Euler",
    "FaceTrackError",
    "FaceTrackingController",
    "RecordingOptions",
    "TrackerOptions",
    "TrackingResult",
    "Vector3",
    "decompose_transform",
]
