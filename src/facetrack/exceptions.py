from __future__ import annotations


class FaceTrackError(Exception):
    """Base class for facetrack errors."""


class BackendInitializationError(FaceTrackError):
    """The inference backend or its model could not be created."""


class CameraUnavailableError(FaceTrackError):
    """No live camera stream could be opened."""
