from __future__ import annotations

from facetrack.backends.base import BackendFrame
from facetrack.tracking.result import TrackingResult
from facetrack.tracking.transform import decompose_transform


def build_tracking_result(
    frame_id: int,
    frame: BackendFrame,
    *,
    include_face_details: bool,
) -> TrackingResult:
    """Assemble the normalized record for one backend frame.

    The decomposer only runs when the backend produced a transform; on a
    detection miss the pose fields stay ``None`` rather than zero.
    """
    rotation = None
    translation = None
    if frame.transformation is not None:
        rotation, translation = decompose_transform(frame.transformation)

    return TrackingResult(
        frame_id=frame_id,
        transformation=frame.transformation,
        rotation=rotation,
        translation=translation,
        blendshapes=frame.blendshapes if include_face_details else None,
        landmarks=frame.landmarks if include_face_details else None,
    )
