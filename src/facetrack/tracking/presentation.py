"""Unity-oriented view of a tracking result.

Unity uses a left-handed frame and metres, so the X rotation is mirrored and
translations are scaled down from the centimetre units MediaPipe reports.
"""

from __future__ import annotations

from typing import Any

from facetrack.tracking.result import TrackingResult

UNITY_TRANSLATION_SCALE = 0.01
DEFAULT_ORIENTATION = "front"


def to_unity_payload(result: TrackingResult, *, orientation: str = DEFAULT_ORIENTATION) -> dict[str, Any]:
    landmarks_flat: list[float] = []
    if result.landmarks:
        for x, y, z in result.landmarks:
            landmarks_flat.extend((x, y, z))

    blendshapes: dict[str, dict[str, float]] = {}
    if result.blendshapes:
        for shape in result.blendshapes:
            blendshapes[shape.name] = {"score": shape.score}

    payload: dict[str, Any] = {
        "frame_id": result.frame_id,
        "landmarks": landmarks_flat,
        "orientation": orientation,
        "blendshapes": blendshapes,
    }
    if result.rotation is not None:
        payload["rotation"] = {
            "x": -result.rotation.x,
            "y": result.rotation.y,
            "z": result.rotation.z,
        }
    if result.translation is not None:
        payload["translation"] = {
            "x": result.translation.x * UNITY_TRANSLATION_SCALE,
            "y": result.translation.y * UNITY_TRANSLATION_SCALE,
            "z": result.translation.z * UNITY_TRANSLATION_SCALE,
        }
    return payload
