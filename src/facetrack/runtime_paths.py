"""Portable path resolution for both dev and PyInstaller-frozen environments.

Model lookup and the download cache go through these helpers so that a
bundled build keeps its models next to the executable.
"""

from __future__ import annotations

import sys
from pathlib import Path

DEFAULT_MODEL_RELATIVE_PATH = "models/face_landmarker.task"


def is_frozen() -> bool:
    """Return ``True`` when running inside a PyInstaller bundle."""
    return getattr(sys, "frozen", False) is True


def get_base_dir() -> Path:
    """Return the base directory used for resolving relative paths.

    * **Frozen (PyInstaller)**: the directory containing the exe.
    * **Development**: the project root (``src/facetrack/`` -> project root).
    """
    if is_frozen():
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent.parent


def get_model_path(relative: str = DEFAULT_MODEL_RELATIVE_PATH) -> Path:
    """Return the absolute path to a model file relative to *base_dir*."""
    return get_base_dir() / relative


def get_model_cache_dir() -> Path:
    """Return the directory downloaded model assets are cached in."""
    return get_base_dir() / "models"
