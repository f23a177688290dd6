from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from facetrack.exceptions import BackendInitializationError
from facetrack.runtime_paths import get_model_cache_dir, get_model_path

logger = logging.getLogger(__name__)

OFFICIAL_FACE_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
    "face_landmarker/float16/latest/face_landmarker.task"
)


def _build_missing_model_message(model_path: Path) -> str:
    return (
        f"Model file not found: {model_path}\n"
        f"Official model URL: {OFFICIAL_FACE_LANDMARKER_MODEL_URL}\n"
        "Pass the URL as the asset location to download it on initialization, or fetch it manually:\n"
        f'curl -L -o "{model_path}" "{OFFICIAL_FACE_LANDMARKER_MODEL_URL}"'
    )


def _require_model_file(model_path: str | Path) -> Path:
    resolved = Path(model_path)
    if not resolved.exists() or not resolved.is_file():
        raise FileNotFoundError(_build_missing_model_message(resolved))
    return resolved


def is_remote_location(location: str | Path) -> bool:
    return urlparse(str(location)).scheme in {"http", "https"}


def import_mediapipe() -> Any:
    try:
        import mediapipe as mp  # type: ignore
    except ImportError as exc:
        raise BackendInitializationError(
            "mediapipe is required for face tracking. Install with: pip install mediapipe"
        ) from exc
    return mp


def fetch_model_asset(url: str, cache_dir: str | Path | None = None) -> Path:
    """Download *url* into the cache directory once and return the local path."""
    target_dir = Path(cache_dir) if cache_dir is not None else get_model_cache_dir()
    filename = Path(urlparse(url).path).name or "face_landmarker.task"
    destination = target_dir / filename
    if destination.exists() and destination.stat().st_size > 0:
        return destination

    target_dir.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")
    logger.info("Downloading model asset %s -> %s", url, destination)
    try:
        urllib.request.urlretrieve(url, partial)
    except (urllib.error.URLError, OSError) as exc:
        partial.unlink(missing_ok=True)
        raise BackendInitializationError(f"Failed to download model asset from {url}: {exc}") from exc
    partial.replace(destination)
    return destination


def resolve_model_asset(
    location: Optional[str | Path] = None,
    *,
    cache_dir: str | Path | None = None,
) -> Path:
    """Return a local model file for *location*, downloading remote assets.

    Without an explicit location the bundled ``models/face_landmarker.task``
    is used when present, otherwise the official model is fetched.
    """
    if location is not None:
        if is_remote_location(location):
            return fetch_model_asset(str(location), cache_dir)
        return _require_model_file(location)

    bundled = get_model_path()
    if bundled.is_file():
        return bundled
    return fetch_model_asset(OFFICIAL_FACE_LANDMARKER_MODEL_URL, cache_dir)
