from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

Landmark = tuple[float, float, float]


@dataclass(frozen=True)
class Euler:
    """Intrinsic Euler angles in radians."""

    x: float
    y: float
    z: float
    order: str = "XYZ"

    def as_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "z": self.z, "order": self.order}


@dataclass(frozen=True)
class Vector3:
    x: float
    y: float
    z: float

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class Blendshape:
    name: str
    score: float

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "score": self.score}


@dataclass(frozen=True)
class TrackingResult:
    """Backend-agnostic record for one scheduler tick.

    ``rotation`` and ``translation`` are present exactly when
    ``transformation`` is. ``blendshapes`` and ``landmarks`` are only filled by
    the modern backend under full tracking.
    """

    frame_id: int
    transformation: Optional[tuple[float, ...]] = None
    rotation: Optional[Euler] = None
    translation: Optional[Vector3] = None
    blendshapes: Optional[tuple[Blendshape, ...]] = None
    landmarks: Optional[tuple[Landmark, ...]] = None

    @property
    def has_transform(self) -> bool:
        return self.transformation is not None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"frame_id": self.frame_id}
        if self.transformation is not None:
            payload["transformation"] = list(self.transformation)
        if self.rotation is not None:
            payload["rotation"] = self.rotation.as_dict()
        if self.translation is not None:
            payload["translation"] = self.translation.as_dict()
        if self.blendshapes is not None:
            payload["blendshapes"] = [shape.as_dict() for shape in self.blendshapes]
        if self.landmarks is not None:
            payload["landmarks"] = [list(point) for point in self.landmarks]
        return payload
