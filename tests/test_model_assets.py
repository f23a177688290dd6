from __future__ import annotations

import urllib.error
from pathlib import Path

import pytest

from facetrack.exceptions import BackendInitializationError
from facetrack.landmarks import model_assets
from facetrack.landmarks.model_assets import (
    OFFICIAL_FACE_LANDMARKER_MODEL_URL,
    fetch_model_asset,
    is_remote_location,
    resolve_model_asset,
)


def test_missing_local_model_reports_helpful_message(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError) as exc_info:
        resolve_model_asset(tmp_path / "missing.task")

    message = str(exc_info.value)
    assert "Model file not found" in message
    assert OFFICIAL_FACE_LANDMARKER_MODEL_URL in message


def test_existing_local_model_is_used_as_is(tmp_path: Path) -> None:
    model = tmp_path / "face.task"
    model.write_bytes(b"model")

    assert resolve_model_asset(str(model)) == model


def test_remote_model_is_downloaded_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    def fake_urlretrieve(url: str, filename: Path) -> None:
        calls.append(url)
        Path(filename).write_bytes(b"downloaded")

    monkeypatch.setattr(model_assets.urllib.request, "urlretrieve", fake_urlretrieve)
    url = "https://example.com/models/custom_face.task"

    first = resolve_model_asset(url, cache_dir=tmp_path)
    second = resolve_model_asset(url, cache_dir=tmp_path)

    assert first == second == tmp_path / "custom_face.task"
    assert first.read_bytes() == b"downloaded"
    assert calls == [url]


def test_download_failure_is_initialization_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_urlretrieve(url: str, filename: Path) -> None:
        raise urllib.error.URLError("offline")

    monkeypatch.setattr(model_assets.urllib.request, "urlretrieve", failing_urlretrieve)

    with pytest.raises(BackendInitializationError, match="offline"):
        fetch_model_asset("https://example.com/face_landmarker.task", tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_default_location_prefers_bundled_model(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    bundled = tmp_path / "models" / "face_landmarker.task"
    bundled.parent.mkdir()
    bundled.write_bytes(b"model")
    monkeypatch.setattr(model_assets, "get_model_path", lambda: bundled)

    assert resolve_model_asset(None) == bundled


def test_is_remote_location() -> None:
    assert is_remote_location("https://example.com/a.task")
    assert not is_remote_location("models/face_landmarker.task")
    assert not is_remote_location(Path("C:/models/a.task"))
