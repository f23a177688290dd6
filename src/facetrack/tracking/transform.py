"""Decomposition of 4x4 column-major pose matrices into Euler angles and translation."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from facetrack.tracking.result import Euler, Vector3

MATRIX_SIZE = 16
GIMBAL_LOCK_THRESHOLD = 0.9999999
SCALE_EPSILON = 1e-12


def _as_row_major(matrix: Sequence[float] | np.ndarray) -> np.ndarray:
    values = np.asarray(matrix, dtype=np.float64).reshape(-1)
    if values.size != MATRIX_SIZE:
        raise ValueError(f"Transformation matrix must have 16 values, got: {values.size}")
    if not np.isfinite(values).all():
        raise ValueError("Transformation matrix must be finite")
    # Column-major storage: element (row, col) lives at col * 4 + row.
    return values.reshape(4, 4).T


def _rotation_part(row_major: np.ndarray) -> np.ndarray:
    basis = row_major[:3, :3].copy()
    scales = np.linalg.norm(basis, axis=0)
    if np.any(scales <= SCALE_EPSILON):
        raise ValueError("Degenerate transformation matrix: zero-length basis vector")
    return basis / scales


def rotation_to_euler(rotation: np.ndarray) -> Euler:
    """Return XYZ-order Euler angles for a pure 3x3 rotation matrix."""
    m11, m12, m13 = (float(v) for v in rotation[0])
    m21, m22, m23 = (float(v) for v in rotation[1])
    m31, m32, m33 = (float(v) for v in rotation[2])

    y = math.asin(max(-1.0, min(1.0, m13)))
    if abs(m13) < GIMBAL_LOCK_THRESHOLD:
        x = math.atan2(-m23, m33)
        z = math.atan2(-m12, m11)
    else:
        x = math.atan2(m32, m22)
        z = 0.0
    return Euler(x=x, y=y, z=z)


def decompose_transform(matrix: Sequence[float] | np.ndarray) -> tuple[Euler, Vector3]:
    """Split a column-major 4x4 transform into (rotation, translation).

    Basis scale is divided out before the angles are read, so a uniformly
    scaled pose yields the same rotation as the unscaled one.
    """
    row_major = _as_row_major(matrix)
    rotation = rotation_to_euler(_rotation_part(row_major))
    translation = Vector3(
        x=float(row_major[0, 3]),
        y=float(row_major[1, 3]),
        z=float(row_major[2, 3]),
    )
    return rotation, translation


def compose_transform(rotation: Euler, translation: Vector3) -> tuple[float, ...]:
    """Build the column-major matrix for an XYZ Euler rotation and a translation."""
    if rotation.order != "XYZ":
        raise ValueError(f"Only XYZ order is supported, got: {rotation.order}")
    cx, sx = math.cos(rotation.x), math.sin(rotation.x)
    cy, sy = math.cos(rotation.y), math.sin(rotation.y)
    cz, sz = math.cos(rotation.z), math.sin(rotation.z)

    rot_x = np.asarray([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    rot_y = np.asarray([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rot_z = np.asarray([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]])

    row_major = np.eye(4, dtype=np.float64)
    row_major[:3, :3] = rot_x @ rot_y @ rot_z
    row_major[:3, 3] = [translation.x, translation.y, translation.z]
    return tuple(float(v) for v in row_major.T.reshape(-1))
