"""Per-frame proctoring signals computed from face landmark sets."""

from proctorsignals.analysis.result import ProctorResult
from proctorsignals.api.proctor_pipeline import FrameResult, ProctorPipeline
from proctorsignals.config import PipelineConfig, ZeroVariancePolicy
from proctorsignals.errors import (
    DegenerateStatisticsError,
    ProctorSignalError,
    SignalMapError,
    SynchronizationError,
    TopologyError,
)
from proctorsignals.landmarks.landmark_set import Frame
from proctorsignals.viz.annotations import TextAnnotation, project_frame, project_result

__all__ = [
    "DegenerateStatisticsError",
    "Frame",
    "FrameResult",
    "PipelineConfig",
    "ProctorPipeline",
    "ProctorResult",
    "ProctorSignalError",
    "SignalMapError",
    "SynchronizationError",
    "TextAnnotation",
    "TopologyError",
    "ZeroVariancePolicy",
    "project_frame",
    "project_result",
]
