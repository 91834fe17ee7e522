from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from proctorsignals.errors import SynchronizationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncedPacket:
    timestamp_ms: int
    values: Mapping[str, Any]


@dataclass(frozen=True)
class DroppedFrame:
    timestamp_ms: int
    reason: str


class StreamJoiner:
    """Join values from several timestamped streams into one packet per timestamp.

    Each stream must deliver strictly increasing timestamps. A timestamp is
    emitted once every stream has a value for it, and packets leave in
    ascending timestamp order. When a stream moves past a pending timestamp
    without delivering it, that timestamp can never complete and is dropped.

    ``control_streams`` carry gating signals rather than data. A timestamp
    that only ever received control values is not a lost frame; it is
    discarded without being reported as dropped.
    """

    def __init__(self, streams: Sequence[str], control_streams: Sequence[str] = ()) -> None:
        names = list(streams)
        if not names:
            raise ValueError("StreamJoiner needs at least one stream")
        if len(set(names)) != len(names):
            raise ValueError(f"Stream names must be unique, got: {names}")
        unknown = [name for name in control_streams if name not in names]
        if unknown:
            raise ValueError(f"Control streams must be listed in streams, got: {unknown}")
        self.streams: tuple[str, ...] = tuple(names)
        self.control_streams: frozenset[str] = frozenset(control_streams)
        self._pending: dict[int, dict[str, Any]] = {}
        self._bounds: dict[str, Optional[int]] = {name: None for name in names}
        self._resolved_through: Optional[int] = None
        self._dropped: list[DroppedFrame] = []
        self._discarded: set[int] = set()

    @property
    def pending_timestamps(self) -> list[int]:
        return sorted(self._pending)

    def add(self, stream: str, timestamp_ms: int, value: Any) -> list[SyncedPacket]:
        if stream not in self._bounds:
            valid = ", ".join(self.streams)
            raise SynchronizationError(f"Unknown stream '{stream}'. Expected one of: {valid}")

        timestamp_ms = int(timestamp_ms)
        bound = self._bounds[stream]
        if bound is not None and timestamp_ms <= bound:
            raise SynchronizationError(
                f"Stream '{stream}' timestamp {timestamp_ms} is not after {bound}"
            )
        if timestamp_ms in self._discarded:
            logger.debug("Discarding late '%s' value for dropped frame %d", stream, timestamp_ms)
            self._bounds[stream] = timestamp_ms
            self._prune_discarded()
            return []
        if self._resolved_through is not None and timestamp_ms <= self._resolved_through:
            raise SynchronizationError(
                f"Stream '{stream}' delivered timestamp {timestamp_ms} after frames through "
                f"{self._resolved_through} were already resolved"
            )

        self._bounds[stream] = timestamp_ms
        self._pending.setdefault(timestamp_ms, {})[stream] = value
        return self._flush()

    def _prune_discarded(self) -> None:
        # a stream at or past a timestamp can no longer deliver it
        bounds = list(self._bounds.values())
        if any(bound is None for bound in bounds):
            return
        floor = min(bounds)  # type: ignore[type-var]
        self._discarded = {ts for ts in self._discarded if ts > floor}

    def _flush(self) -> list[SyncedPacket]:
        ready: list[SyncedPacket] = []
        for timestamp_ms in sorted(self._pending):
            values = self._pending[timestamp_ms]
            missing = [name for name in self.streams if name not in values]
            if not missing:
                ready.append(SyncedPacket(timestamp_ms=timestamp_ms, values=dict(values)))
            else:
                passed = [
                    name
                    for name in missing
                    if self._bounds[name] is not None and self._bounds[name] > timestamp_ms
                ]
                if not passed:
                    break
                if set(values) <= self.control_streams:
                    logger.debug("Discarding control-only timestamp %d", timestamp_ms)
                else:
                    reason = f"streams advanced past timestamp without a value: {', '.join(passed)}"
                    logger.warning("Dropping frame %d: %s", timestamp_ms, reason)
                    self._dropped.append(DroppedFrame(timestamp_ms=timestamp_ms, reason=reason))
                self._discarded.add(timestamp_ms)

            del self._pending[timestamp_ms]
            self._resolved_through = timestamp_ms
        self._prune_discarded()
        return ready

    def take_dropped(self) -> list[DroppedFrame]:
        dropped, self._dropped = self._dropped, []
        return dropped

    def reset(self) -> None:
        self._pending.clear()
        self._bounds = {name: None for name in self.streams}
        self._resolved_through = None
        self._dropped = []
        self._discarded = set()
