"""Exception types raised by the signal pipeline."""

from __future__ import annotations


class ProctorSignalError(ValueError):
    """Base class for pipeline contract violations."""


class TopologyError(ProctorSignalError):
    """A landmark set does not match the topology a detector requires."""


class DegenerateStatisticsError(ProctorSignalError):
    """Standardization hit a zero-variance axis under the ``error`` policy."""


class SynchronizationError(ProctorSignalError):
    """Per-face or per-stream values could not be joined for one frame."""


class SignalMapError(ProctorSignalError):
    """A string-keyed signal map is missing a required key."""
