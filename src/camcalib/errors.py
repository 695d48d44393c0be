"""
Exception types for camcalib.

Fatal: ConfigError, SourceError, StructuralError, SolverError.
Recovered where they occur: CaptureError, DetectionMiss.
"""

from __future__ import annotations


class CalibrationError(Exception):
    """Base class for all calibration errors."""


class ConfigError(CalibrationError, ValueError):
    """Invalid board size, pattern, square size, or input kind."""


class SourceError(CalibrationError, OSError):
    """Missing source directory, or a video/device that cannot be used."""


class CaptureError(CalibrationError):
    """A single frame failed to decode or arrive."""


class DetectionMiss(CalibrationError):
    """Pattern not found in an otherwise valid frame."""


class StructuralError(CalibrationError):
    """Object/image point sets violate the correspondence invariants."""


class SolverError(CalibrationError):
    """Calibration could not be solved from the available captures."""

    def __init__(self, message: str, capture_count: int = 0):
        super().__init__(message)
        self.capture_count = capture_count
