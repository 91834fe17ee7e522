import json
import logging
from pathlib import Path

import numpy as np
from rich.logging import RichHandler
from typer.testing import CliRunner

from proctorsignals.cli import app
from proctorsignals.logging_config import PACKAGE_LOGGER, setup_logging

runner = CliRunner()


def _write_landmarks(path: Path, landmark_count: int = 478) -> None:
    rng = np.random.default_rng(1)
    np.savez_compressed(
        path,
        frame_indices=np.arange(3, dtype=np.int64),
        timestamps_ms=np.asarray([0, 33, 66], dtype=np.int64),
        landmarks_xyz=rng.uniform(0.2, 0.8, size=(3, landmark_count, 3)).astype(np.float32),
        presence=np.asarray([True, True, False], dtype=bool),
    )


def test_cli_help_runs() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "ProctorSignals CLI" in result.output


def test_info_summarizes_artifact(tmp_path: Path) -> None:
    npz_path = tmp_path / "landmarks.npz"
    _write_landmarks(npz_path)

    result = runner.invoke(app, ["info", "--landmarks", str(npz_path)])

    assert result.exit_code == 0
    assert "single" in result.output
    assert "478" in result.output


def test_run_prints_json_document(tmp_path: Path) -> None:
    npz_path = tmp_path / "landmarks.npz"
    _write_landmarks(npz_path)

    result = runner.invoke(app, ["run", "--landmarks", str(npz_path), "--json", "--workers", "2"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["config"]["max_workers"] == 2
    assert [frame["timestamp_ms"] for frame in payload["frames"]] == [0, 33, 66]
    assert [len(frame["faces"]) for frame in payload["frames"]] == [1, 1, 0]
    assert payload["frames"][0]["faces"][0]["face_movement"] == 0.0
    assert payload["dropped"] == []
    assert [len(frame["overlay"]) for frame in payload["frames"]] == [4, 4, 0]
    assert payload["frames"][0]["overlay"][2]["left"] == 0.05


def test_run_with_tick_gating_prints_table(tmp_path: Path) -> None:
    npz_path = tmp_path / "landmarks.npz"
    _write_landmarks(npz_path)

    result = runner.invoke(app, ["run", "--landmarks", str(npz_path), "--gate-on-tick"])

    assert result.exit_code == 0
    assert "Proctor signals" in result.output
    assert "frames emitted: 3" in result.output


def test_run_rejects_missing_landmarks(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "--landmarks", str(tmp_path / "missing.npz")])
    assert result.exit_code != 0
    assert "Landmarks file not found" in result.output


def test_run_reports_topology_errors(tmp_path: Path) -> None:
    npz_path = tmp_path / "short.npz"
    _write_landmarks(npz_path, landmark_count=100)

    result = runner.invoke(app, ["run", "--landmarks", str(npz_path)])

    assert result.exit_code == 1
    assert "Landmark topology error" in result.output


def test_run_rejects_unknown_zero_variance_policy(tmp_path: Path) -> None:
    npz_path = tmp_path / "landmarks.npz"
    _write_landmarks(npz_path)

    result = runner.invoke(app, ["run", "--landmarks", str(npz_path), "--zero-variance", "clamp"])
    assert result.exit_code != 0


def test_setup_logging_is_idempotent() -> None:
    setup_logging(logging.DEBUG)
    logger = setup_logging(logging.WARNING)

    handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
    assert logger.name == PACKAGE_LOGGER
    assert len(handlers) == 1
    assert handlers[0].level == logging.WARNING
    assert logger.level == logging.WARNING
