from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

import numpy as np

from proctorsignals.analysis.alignment import AlignmentSignal, FaceAlignmentDetector
from proctorsignals.analysis.blink import BlinkSignal, EyeBlinkDetector
from proctorsignals.analysis.result import ProctorResult, aggregate_results
from proctorsignals.analysis.standardization import standardize_with_report
from proctorsignals.analysis.temporal import (
    DeltaStateArena,
    FaceMovementDetector,
    FaceSlotState,
    FacialActivityDetector,
)
from proctorsignals.config import PipelineConfig
from proctorsignals.errors import ProctorSignalError, SynchronizationError, TopologyError
from proctorsignals.landmarks.landmark_set import Frame, as_landmark_set, validate_topology
from proctorsignals.sync.fanout import (
    EndLoopCollector,
    LoopItem,
    attach_context,
    begin_loop,
    parallel_map,
)
from proctorsignals.sync.joiner import DroppedFrame, StreamJoiner, SyncedPacket

logger = logging.getLogger(__name__)

SIGNAL_STREAMS = ("align", "blink", "activity", "movement")
TICK_STREAM = "tick"


@dataclass(frozen=True)
class FrameResult:
    timestamp_ms: int
    results: tuple[ProctorResult, ...] = ()
    degenerate_axes: tuple[tuple[str, ...], ...] = ()

    @property
    def face_count(self) -> int:
        return len(self.results)

    def as_dict(self) -> dict[str, Any]:
        return {
            "timestamp_ms": self.timestamp_ms,
            "faces": [result.as_dict() for result in self.results],
            "degenerate_axes": [list(axes) for axes in self.degenerate_axes],
        }


@dataclass(frozen=True, eq=False)
class _FaceMeasurement:
    raw: np.ndarray
    standardized: np.ndarray
    alignment: AlignmentSignal
    blink: BlinkSignal
    degenerate_axes: tuple[str, ...]


class ProctorPipeline:
    """Turn timestamped multi-face landmark frames into per-face proctoring results.

    Frames must arrive in strictly increasing timestamp order. Temporal
    state is held per face slot in a :class:`DeltaStateArena` owned by the
    pipeline. Per-face work may run on a thread pool; every frame's outputs
    are joined by face index and timestamp before a result is emitted.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()
        self.arena = DeltaStateArena()
        self.blink_detector = EyeBlinkDetector(self.config.blink)
        self.alignment_detector = FaceAlignmentDetector()
        self.activity_detector = FacialActivityDetector()
        self.movement_detector = FaceMovementDetector()

        streams = list(SIGNAL_STREAMS)
        control_streams: list[str] = []
        if self.config.gate_on_tick:
            streams.append(TICK_STREAM)
            control_streams.append(TICK_STREAM)
        self._joiner = StreamJoiner(streams, control_streams=control_streams)
        self._collectors: dict[str, EndLoopCollector[Any]] = {
            name: EndLoopCollector(name) for name in SIGNAL_STREAMS
        }
        self._degenerate: dict[int, tuple[tuple[str, ...], ...]] = {}
        self._last_timestamp: Optional[int] = None
        self._dropped: list[DroppedFrame] = []
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.config.max_workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="proctorsignals-face",
            )

    def __enter__(self) -> "ProctorPipeline":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    @property
    def dropped_frames(self) -> list[DroppedFrame]:
        return list(self._dropped)

    def take_dropped(self) -> list[DroppedFrame]:
        """Return the frames dropped since the last call and forget them."""
        dropped, self._dropped = self._dropped, []
        return dropped

    def reset(self) -> None:
        self.arena.reset()
        self._joiner.reset()
        self._collectors = {name: EndLoopCollector(name) for name in SIGNAL_STREAMS}
        self._degenerate.clear()
        self._last_timestamp = None

    def _measure(self, item: LoopItem[np.ndarray]) -> _FaceMeasurement:
        raw = item.value
        standardized, degenerate_axes = standardize_with_report(
            raw, zero_variance=self.config.zero_variance
        )
        return _FaceMeasurement(
            raw=raw,
            standardized=standardized,
            alignment=self.alignment_detector.compute(standardized),
            blink=self.blink_detector.compute(standardized),
            degenerate_axes=degenerate_axes,
        )

    def _advance(self, item: LoopItem[tuple[_FaceMeasurement, FaceSlotState]]) -> tuple[float, float]:
        measurement, slot = item.value
        activity = self.activity_detector.update(slot.activity, measurement.standardized)
        movement = self.movement_detector.update(slot.movement, measurement.raw)
        return activity, movement

    def _claim_slots(self, measurements: list[_FaceMeasurement]) -> list[FaceSlotState]:
        face_count = len(measurements)
        if self.arena.face_count == face_count:
            current = self.arena.states_for(face_count)
            for idx, (measurement, slot) in enumerate(zip(measurements, current)):
                previous = slot.activity.previous
                if previous is not None and previous.shape != measurement.standardized.shape:
                    raise TopologyError(
                        f"Face {idx} changed from {previous.shape[0]} to "
                        f"{measurement.standardized.shape[0]} landmarks between frames"
                    )
        return self.arena.states_for(face_count)

    def _fan_in(self, stream: str, timestamp_ms: int, items: list[LoopItem[Any]]) -> list[Any]:
        collector = self._collectors[stream]
        joined = collector.expect(timestamp_ms, len(items))
        for item in items:
            joined = collector.add(item)
        if joined is None:
            raise SynchronizationError(f"{stream}: frame {timestamp_ms} did not complete")
        return joined

    def _feed(self, stream: str, timestamp_ms: int, value: Any) -> list[FrameResult]:
        packets = self._joiner.add(stream, timestamp_ms, value)
        for dropped in self._joiner.take_dropped():
            self._degenerate.pop(dropped.timestamp_ms, None)
            self._dropped.append(dropped)
        return [result for result in map(self._aggregate, packets) if result is not None]

    def _aggregate(self, packet: SyncedPacket) -> Optional[FrameResult]:
        degenerate = self._degenerate.pop(packet.timestamp_ms, ())
        try:
            results = aggregate_results(
                packet.values["align"],
                packet.values["blink"],
                packet.values["activity"],
                packet.values["movement"],
            )
        except ProctorSignalError as exc:
            logger.warning("Dropping frame %d: %s", packet.timestamp_ms, exc)
            self._dropped.append(DroppedFrame(timestamp_ms=packet.timestamp_ms, reason=str(exc)))
            return None
        return FrameResult(
            timestamp_ms=packet.timestamp_ms,
            results=tuple(results),
            degenerate_axes=degenerate,
        )

    def process_frame(self, frame: Frame) -> list[FrameResult]:
        """Compute all signals for ``frame`` and return any frames now complete.

        Without tick gating this is exactly the result for ``frame``. Raises
        before touching temporal state when the frame is out of order or a
        face violates the landmark topology.
        """
        timestamp_ms = int(frame.timestamp_ms)
        if self._last_timestamp is not None and timestamp_ms <= self._last_timestamp:
            raise SynchronizationError(
                f"Frame timestamp {timestamp_ms} is not after previous frame {self._last_timestamp}"
            )
        faces: list[np.ndarray] = []
        for idx, face in enumerate(frame.faces):
            try:
                landmarks = as_landmark_set(face, name=f"faces[{idx}]")
                validate_topology(landmarks, expected_count=self.config.expected_landmark_count)
            except TopologyError as exc:
                raise TopologyError(f"Face {idx} at {timestamp_ms}: {exc}") from exc
            faces.append(landmarks)

        logger.debug("Frame %d: %d face(s)", timestamp_ms, len(faces))

        face_items = begin_loop(timestamp_ms, faces)
        measurements = parallel_map(self._measure, face_items, executor=self._executor)
        slots = self._claim_slots(measurements)
        slot_items = [
            attach_context(item, (measurement, slot))
            for item, measurement, slot in zip(face_items, measurements, slots)
        ]
        deltas = parallel_map(self._advance, slot_items, executor=self._executor)
        self._last_timestamp = timestamp_ms

        degenerate = tuple(m.degenerate_axes for m in measurements)
        for idx, axes in enumerate(degenerate):
            if axes:
                logger.warning(
                    "Frame %d face %d: zero-variance axes %s (policy=%s)",
                    timestamp_ms,
                    idx,
                    ",".join(axes),
                    self.config.zero_variance.value,
                )
        self._degenerate[timestamp_ms] = degenerate

        per_stream = {
            "align": [attach_context(item, m.alignment) for item, m in zip(face_items, measurements)],
            "blink": [attach_context(item, m.blink) for item, m in zip(face_items, measurements)],
            "activity": [attach_context(item, d[0]) for item, d in zip(face_items, deltas)],
            "movement": [attach_context(item, d[1]) for item, d in zip(face_items, deltas)],
        }
        completed: list[FrameResult] = []
        for stream, items in per_stream.items():
            joined = self._fan_in(stream, timestamp_ms, items)
            completed.extend(self._feed(stream, timestamp_ms, joined))
        return completed

    def tick(self, timestamp_ms: int) -> list[FrameResult]:
        """Allow results for ``timestamp_ms`` to be emitted when tick gating is on."""
        if not self.config.gate_on_tick:
            logger.debug("Ignoring tick %d; tick gating is disabled", timestamp_ms)
            return []
        return self._feed(TICK_STREAM, int(timestamp_ms), None)

    def run(self, frames: Iterable[Frame]) -> Iterator[FrameResult]:
        """Process ``frames`` in order, ticking each timestamp when gating is on."""
        for frame in frames:
            yield from self.process_frame(frame)
            if self.config.gate_on_tick:
                yield from self.tick(frame.timestamp_ms)
