"""
Reprojection error diagnostics.
"""

from __future__ import annotations

import math
from typing import Callable

import cv2
import numpy as np

from ..errors import SolverError, StructuralError
from ..types import CalibrationResult, ErrorReport
from .accumulator import CorrespondenceAccumulator

# Same call shape as cv2.projectPoints:
# (object_points, rvec, tvec, camera_matrix, dist_coeffs) -> (image_points, jacobian)
Projector = Callable[..., tuple]


def compute_reprojection_errors(
    accumulator: CorrespondenceAccumulator,
    result: CalibrationResult,
    projector: Projector = cv2.projectPoints,
) -> ErrorReport:
    """
    Compute RMS reprojection error per capture and over all points.

    For capture i with n_i points, E_i is the L2 norm of the flattened
    difference between observed and projected points. Per-capture RMS is
    sqrt(E_i^2 / n_i); the total is sqrt(sum(E_i^2) / sum(n_i)), so every
    point carries the same weight regardless of its capture.

    Args:
        accumulator: Captures used for the calibration
        result: Calibration to evaluate
        projector: Point projection with the cv2.projectPoints signature

    Returns:
        ErrorReport

    Raises:
        SolverError: If there are no captures
        StructuralError: If result and accumulator disagree on capture count
    """
    count = accumulator.size()
    if count == 0:
        raise SolverError("No captures to evaluate", capture_count=0)
    if result.capture_count != count:
        raise StructuralError(
            f"Calibration has extrinsics for {result.capture_count} captures, "
            f"accumulator holds {count}"
        )

    per_capture = []
    total_sq_error = 0.0
    total_points = 0

    for i, (obj, img) in enumerate(accumulator):
        projected, _ = projector(
            obj,
            result.rotations[i],
            result.translations[i],
            result.camera_matrix,
            result.distortion,
        )
        projected = np.asarray(projected, dtype=np.float64).reshape(-1, 2)
        if projected.shape != img.shape:
            raise StructuralError(
                f"Projected {len(projected)} points for capture {i}, observed {len(img)}"
            )

        error = float(np.linalg.norm(img.astype(np.float64).ravel() - projected.ravel()))
        n = len(obj)
        per_capture.append(math.sqrt(error * error / n))
        total_sq_error += error * error
        total_points += n

    return ErrorReport(
        per_capture=tuple(per_capture),
        total=math.sqrt(total_sq_error / total_points),
    )
