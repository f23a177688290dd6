from __future__ import annotations

from facetrack.backends.base import FaceTrackingBackend
from facetrack.backends.legacy import LegacyLiveStreamBackend
from facetrack.backends.modern import ModernFaceLandmarkerBackend
from facetrack.config import BackendKind, TrackerOptions


def create_backend(options: TrackerOptions) -> FaceTrackingBackend:
    """Pick the backend for a session. The choice is fixed until teardown."""
    backend_cls = ModernFaceLandmarkerBackend if options.backend is BackendKind.modern else LegacyLiveStreamBackend
    return backend_cls(
        model_asset=options.asset_location_override,
        cache_dir=options.model_cache_dir,
        use_gpu_delegate=options.use_gpu_delegate,
    )
