from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from facetrack.tracking.result import TrackingResult


def tracking_log_payload(
    log: Sequence[TrackingResult],
    *,
    meta: Optional[Mapping[str, Any]] = None,
    export_time: Optional[str] = None,
) -> dict[str, Any]:
    return {
        "meta": {
            **dict(meta or {}),
            "frame_count": len(log),
            "export_time": export_time or datetime.now(timezone.utc).isoformat(),
        },
        "tracking_log": [result.to_dict() for result in log],
    }


def save_tracking_log(
    log: Sequence[TrackingResult],
    path: str | Path,
    *,
    meta: Optional[Mapping[str, Any]] = None,
    export_time: Optional[str] = None,
) -> Path:
    out_path = Path(path)
    if out_path.suffix.lower() != ".json":
        raise ValueError(f"Output file must be a .json file: {out_path}")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = tracking_log_payload(log, meta=meta, export_time=export_time)
    out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out_path
