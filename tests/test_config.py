from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from proctorsignals.config import (
    AlignmentThresholds,
    BlinkCalibration,
    PipelineConfig,
    ZeroVariancePolicy,
    normalize_policy_value,
)


def test_pipeline_config_defaults() -> None:
    config = PipelineConfig()

    assert config.zero_variance is ZeroVariancePolicy.zero
    assert config.max_workers == 1
    assert config.gate_on_tick is False
    assert config.expected_landmark_count is None
    assert config.blink == BlinkCalibration()
    assert config.alignment == AlignmentThresholds()


def test_pipeline_config_is_frozen() -> None:
    config = PipelineConfig()
    with pytest.raises(ValidationError):
        config.max_workers = 4  # type: ignore[misc]


def test_pipeline_config_rejects_invalid_values() -> None:
    with pytest.raises(ValidationError):
        PipelineConfig(max_workers=0)
    with pytest.raises(ValidationError, match="expected_landmark_count"):
        PipelineConfig(expected_landmark_count=100)
    with pytest.raises(ValidationError):
        PipelineConfig(zero_variance="clamp")


def test_blink_calibration_threshold_uses_calibrated_constants() -> None:
    calibration = BlinkCalibration()
    assert calibration.threshold(0.5, 0.4) == pytest.approx(0.2114)
    assert calibration.threshold(0.0, 0.0) == pytest.approx(0.1476)

    with pytest.raises(ValidationError, match="finite"):
        BlinkCalibration(intercept=math.nan)


def test_alignment_thresholds_require_ordering() -> None:
    thresholds = AlignmentThresholds()
    assert (thresholds.right, thresholds.left, thresholds.down, thresholds.up) == (0.3, -0.3, 0.6, -0.05)

    with pytest.raises(ValidationError, match="left threshold"):
        AlignmentThresholds(left=0.5, right=0.1)
    with pytest.raises(ValidationError, match="up threshold"):
        AlignmentThresholds(up=0.7, down=0.6)


def test_normalize_policy_value_accepts_names_and_members() -> None:
    assert normalize_policy_value("passthrough") is ZeroVariancePolicy.passthrough
    assert normalize_policy_value(ZeroVariancePolicy.error) is ZeroVariancePolicy.error

    with pytest.raises(ValueError, match="Unsupported zero-variance policy 'clamp'"):
        normalize_policy_value("clamp")


def test_as_summary_is_plain_data() -> None:
    summary = PipelineConfig(max_workers=3, zero_variance="passthrough").as_summary()

    assert summary["zero_variance"] == "passthrough"
    assert summary["max_workers"] == 3
    assert summary["blink"]["intercept"] == pytest.approx(0.1476)
    assert summary["alignment"]["up"] == pytest.approx(-0.05)
