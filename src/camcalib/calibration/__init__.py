"""
Calibration module for camcalib.

Pattern geometry, detection, correspondence collection, the solver adapter
and reprojection diagnostics. CalibrationSession wires them together.
"""

from .patterns import (
    generate_object_points,
    object_points_for,
)

from .detection import (
    Found,
    NotFound,
    FeatureExtractor,
    canonical_order,
    detect_pattern,
    draw_pattern,
    annotated_path,
)

from .accumulator import CorrespondenceAccumulator

from .intrinsic import (
    calibration_flags,
    calibrate_camera,
)

from .reprojection import compute_reprojection_errors

from .session import CalibrationSession

__all__ = [
    # Patterns
    "generate_object_points",
    "object_points_for",
    # Detection
    "Found",
    "NotFound",
    "FeatureExtractor",
    "canonical_order",
    "detect_pattern",
    "draw_pattern",
    "annotated_path",
    # Correspondences
    "CorrespondenceAccumulator",
    # Solve
    "calibration_flags",
    "calibrate_camera",
    "compute_reprojection_errors",
    # Orchestration
    "CalibrationSession",
]
