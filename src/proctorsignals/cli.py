from __future__ import annotations

import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from proctorsignals.analysis.alignment import classify_horizontal, classify_vertical
from proctorsignals.api.proctor_pipeline import FrameResult, ProctorPipeline
from proctorsignals.config import PipelineConfig, ZeroVariancePolicy, normalize_policy_value
from proctorsignals.errors import ProctorSignalError, SynchronizationError, TopologyError
from proctorsignals.landmarks.artifacts import NpzLandmarkSource
from proctorsignals.logging_config import setup_logging
from proctorsignals.viz.annotations import project_frame

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="ProctorSignals CLI for replaying face landmark recordings through the signal pipeline.",
)
console = Console()


def _bool_mark(value: bool) -> str:
    return "yes" if value else "no"


def _load_source(landmarks: Path) -> NpzLandmarkSource:
    try:
        return NpzLandmarkSource(landmarks)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--landmarks") from exc


def _build_table(frame_results: list[FrameResult], config: PipelineConfig) -> Table:
    table = Table(title="Proctor signals")
    table.add_column("ts (ms)", justify="right")
    table.add_column("face", justify="right")
    table.add_column("blink L")
    table.add_column("blink R")
    table.add_column("horizontal")
    table.add_column("vertical")
    table.add_column("activity", justify="right")
    table.add_column("movement", justify="right")
    thresholds = config.alignment
    for frame_result in frame_results:
        if not frame_result.results:
            table.add_row(str(frame_result.timestamp_ms), "-", "", "", "", "", "", "")
            continue
        for face_idx, result in enumerate(frame_result.results):
            table.add_row(
                str(frame_result.timestamp_ms),
                str(face_idx),
                _bool_mark(result.is_left_eye_blinking),
                _bool_mark(result.is_right_eye_blinking),
                f"{result.horizontal_align:+.3f} {classify_horizontal(result.horizontal_align, thresholds)}",
                f"{result.vertical_align:+.3f} {classify_vertical(result.vertical_align, thresholds)}",
                f"{result.facial_activity:.4f}",
                f"{result.face_movement:.4f}",
            )
    return table


def _frame_document(frame_result: FrameResult, config: PipelineConfig) -> dict[str, object]:
    document: dict[str, object] = frame_result.as_dict()
    document["overlay"] = [
        annotation.as_dict() for annotation in project_frame(frame_result, config.alignment)
    ]
    return document


@app.command("run")
def run(
    landmarks: Path = typer.Option(
        ...,
        "--landmarks",
        "-l",
        help="landmarks.npz recording to replay.",
    ),
    workers: int = typer.Option(
        1,
        "--workers",
        "-w",
        min=1,
        help="Threads used for per-face work.",
    ),
    zero_variance: ZeroVariancePolicy = typer.Option(
        ZeroVariancePolicy.zero,
        "--zero-variance",
        help="Standardized output for an axis with zero spread: zero, passthrough, error.",
    ),
    gate_on_tick: bool = typer.Option(
        False,
        "--gate-on-tick",
        help="Hold each frame's results until a tick with the same timestamp arrives.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print one JSON document instead of a table.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log slot resets, dropped frames and degenerate axes.",
    ),
) -> None:
    setup_logging(logging.DEBUG if verbose else logging.WARNING)

    try:
        config = PipelineConfig(
            zero_variance=normalize_policy_value(zero_variance),
            max_workers=workers,
            gate_on_tick=gate_on_tick,
        )
    except ValidationError as exc:
        message = exc.errors()[0].get("msg", "Invalid input")
        raise typer.BadParameter(message, param_hint="--workers") from exc

    source = _load_source(landmarks)
    try:
        with ProctorPipeline(config) as pipeline:
            frame_results = list(pipeline.run(source.iter_frames()))
            dropped = pipeline.take_dropped()
    except TopologyError as exc:
        console.print(f"[red]Landmark topology error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except SynchronizationError as exc:
        console.print(f"[red]Synchronization error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except ProctorSignalError as exc:
        console.print(f"[red]Signal error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    if as_json:
        console.print_json(
            data={
                "landmarks": str(landmarks),
                "config": config.as_summary(),
                "frames": [_frame_document(frame_result, config) for frame_result in frame_results],
                "dropped": [
                    {"timestamp_ms": item.timestamp_ms, "reason": item.reason} for item in dropped
                ],
            }
        )
        return

    console.print(_build_table(frame_results, config))
    console.print(f"- frames emitted: {len(frame_results)}")
    if dropped:
        console.print(f"[yellow]- frames dropped: {len(dropped)}[/yellow]")


@app.command("info")
def info(
    landmarks: Path = typer.Option(
        ...,
        "--landmarks",
        "-l",
        help="landmarks.npz recording to inspect.",
    ),
) -> None:
    source = _load_source(landmarks)
    summary = source.loaded.summary()

    table = Table(title=f"Landmarks: {landmarks.name}")
    table.add_column("field")
    table.add_column("value")
    for key, value in summary.items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
