from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from facetrack.config import StaleResultPolicy, TrackerOptions
from facetrack.controller import FaceTrackingController
from facetrack.exceptions import BackendInitializationError, CameraUnavailableError
from facetrack.io.camera import CameraStream, open_camera_stream
from facetrack.session.export import save_tracking_log
from facetrack.tracking.presentation import to_unity_payload
from facetrack.tracking.result import TrackingResult
from facetrack.tracking.transform import decompose_transform

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="facetrack: live MediaPipe face geometry tracking for experiment sessions.",
)
console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level for library diagnostics.",
        click_type=click.Choice(LOG_LEVELS, case_sensitive=False),
    ),
) -> None:
    _configure_logging(log_level.upper())


def _open_stream(camera: int) -> Optional[CameraStream]:
    try:
        return open_camera_stream(camera)
    except CameraUnavailableError as exc:
        logging.getLogger(__name__).warning("%s", exc)
        return None


async def _run_session(
    options: TrackerOptions,
    stream: Optional[CameraStream],
    *,
    duration: float,
    record: bool,
    unity: bool,
) -> list[TrackingResult]:
    controller = FaceTrackingController(lambda: stream)
    received: list[int] = []

    def _count(result: TrackingResult) -> None:
        received.append(result.frame_id)

    def _print_unity(result: TrackingResult) -> None:
        console.print_json(data=to_unity_payload(result))

    controller.register_result_listener(_count)
    if unity:
        controller.register_result_listener(_print_unity)

    await controller.initialize(options)
    try:
        controller.start()
        controller.configure_recording({"record": record})
        await asyncio.sleep(duration)
        log = controller.finish()["tracking_log"]
    finally:
        controller.close()

    console.print(f"Received {len(received)} results, recorded {len(log)}")
    return log


@app.command("run")
def run(
    camera: int = typer.Option(0, "--camera", "-c", help="OpenCV camera index."),
    modern: bool = typer.Option(
        False,
        "--modern/--legacy",
        help="Query FaceLandmarker per frame (modern) or stream frames to it asynchronously (legacy).",
    ),
    full_tracking: bool = typer.Option(
        False,
        "--full-tracking",
        help="Include blendshapes and landmarks (modern backend only).",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="FaceLandmarker model path or URL.",
    ),
    model_cache_dir: Optional[str] = typer.Option(None, "--model-cache-dir", help="Where downloaded models are kept."),
    gpu: bool = typer.Option(False, "--gpu", help="Run FaceLandmarker on the GPU delegate."),
    duration: float = typer.Option(10.0, "--duration", "-d", min=0.0, help="Session length in seconds."),
    record: bool = typer.Option(True, "--record/--no-record", help="Record results into the session log."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the session log to this .json file."),
    stale_policy: StaleResultPolicy = typer.Option(
        StaleResultPolicy.keep,
        "--stale-policy",
        help="Keep or drop legacy results that arrive after the session stopped.",
    ),
    max_log_entries: Optional[int] = typer.Option(None, "--max-log-entries", min=1, help="Cap the session log."),
    unity: bool = typer.Option(False, "--unity", help="Print each result as a Unity pose payload."),
) -> None:
    try:
        options = TrackerOptions(
            use_modern_backend=modern,
            use_full_tracking=full_tracking,
            asset_location_override=model,
            model_cache_dir=model_cache_dir,
            use_gpu_delegate=gpu,
            stale_result_policy=stale_policy,
            max_log_entries=max_log_entries,
        )
    except ValidationError as exc:
        message = exc.errors()[0].get("msg", "Invalid input")
        raise typer.BadParameter(message) from exc

    if output is not None and output.suffix.lower() != ".json":
        raise typer.BadParameter("Output file must be a .json file", param_hint="--output")

    stream = _open_stream(camera)
    try:
        log = asyncio.run(
            _run_session(options, stream, duration=duration, record=record, unity=unity)
        )
    except BackendInitializationError as exc:
        console.print(f"[bold red]Initialization failed[/bold red]: {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        if stream is not None:
            stream.release()

    if output is not None:
        saved = save_tracking_log(log, output, meta=options.as_summary())
        console.print(f"Saved tracking log to {saved}")


@app.command("decompose")
def decompose(
    values: list[float] = typer.Argument(..., help="16 matrix values in column-major order."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
) -> None:
    try:
        rotation, translation = decompose_transform(values)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="VALUES") from exc

    if as_json:
        console.print_json(data={"rotation": rotation.as_dict(), "translation": translation.as_dict()})
        return

    table = Table(title="Pose")
    table.add_column("Component")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")
    table.add_column("z", justify="right")
    table.add_row("rotation (rad)", f"{rotation.x:.6f}", f"{rotation.y:.6f}", f"{rotation.z:.6f}")
    table.add_row("translation", f"{translation.x:.6f}", f"{translation.y:.6f}", f"{translation.z:.6f}")
    console.print(table)
