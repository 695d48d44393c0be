"""
Intrinsic camera calibration.

Thin adapter over cv2.calibrateCamera: checks the input, maps settings to
solver flags, and packs the output into a CalibrationResult.
"""

from __future__ import annotations

from typing import Callable

import cv2
import numpy as np

import camcalib.logger
from ..errors import SolverError, StructuralError
from ..types import CalibrationResult, CalibrationSettings
from .accumulator import CorrespondenceAccumulator

logger = camcalib.logger.get(__name__)

MIN_CAPTURES = 3

# Same call shape as cv2.calibrateCamera:
# (object_points, image_points, image_size, camera_matrix, dist_coeffs, flags=...)
#   -> (rms, camera_matrix, dist_coeffs, rvecs, tvecs)
Solver = Callable[..., tuple]


def calibration_flags(settings: CalibrationSettings) -> int:
    """
    Build the cv2.calibrateCamera flag word from settings.

    Args:
        settings: Validated calibration settings

    Returns:
        Bitwise OR of cv2.CALIB_* flags
    """
    flags = 0
    if settings.fix_principal_point:
        flags |= cv2.CALIB_FIX_PRINCIPAL_POINT
    if settings.zero_tangential_distortion:
        flags |= cv2.CALIB_ZERO_TANGENT_DIST
    if settings.fix_aspect_ratio:
        flags |= cv2.CALIB_FIX_ASPECT_RATIO
    if settings.fix_k1:
        flags |= cv2.CALIB_FIX_K1
    if settings.fix_k2:
        flags |= cv2.CALIB_FIX_K2
    if settings.fix_k3:
        flags |= cv2.CALIB_FIX_K3
    if settings.fix_k4:
        flags |= cv2.CALIB_FIX_K4
    if settings.fix_k5:
        flags |= cv2.CALIB_FIX_K5
    return flags


def _initial_camera_matrix(flags: int) -> np.ndarray | None:
    # FIX_ASPECT_RATIO keeps fx/fy from the initial matrix
    if flags & cv2.CALIB_FIX_ASPECT_RATIO:
        return np.eye(3, dtype=np.float64)
    return None


def calibrate_camera(
    accumulator: CorrespondenceAccumulator,
    image_size: tuple[int, int],
    flags: int = 0,
    solver: Solver = cv2.calibrateCamera,
    min_captures: int = MIN_CAPTURES,
) -> CalibrationResult:
    """
    Calibrate camera intrinsics from accumulated correspondences.

    The accumulator is frozen before the solver runs.

    Args:
        accumulator: Collected captures
        image_size: (width, height) of the captured frames in pixels
        flags: cv2.CALIB_* flags, see calibration_flags()
        solver: Calibration routine with the cv2.calibrateCamera signature
        min_captures: Fewest captures accepted

    Returns:
        CalibrationResult with one rotation/translation per capture

    Raises:
        SolverError: If there are too few captures or the solve fails
    """
    accumulator.freeze()
    count = accumulator.size()

    if count == 0:
        raise SolverError("No captures available for calibration", capture_count=0)
    if count < min_captures:
        raise SolverError(
            f"Insufficient captures for calibration: {count} (need at least {min_captures})",
            capture_count=count,
        )

    logger.info(
        f"Calibrating from {count} captures ({accumulator.total_points} points), "
        f"image size {image_size[0]}x{image_size[1]}"
    )

    try:
        rms, matrix, dist, rvecs, tvecs = solver(
            list(accumulator.object_points),
            list(accumulator.image_points),
            tuple(image_size),
            _initial_camera_matrix(flags),
            None,
            flags=flags,
        )
    except cv2.error as e:
        raise SolverError(f"Calibration solver failed: {e}", capture_count=count) from e

    if len(rvecs) != count or len(tvecs) != count:
        raise StructuralError(
            f"Solver returned {len(rvecs)} rotations / {len(tvecs)} translations "
            f"for {count} captures"
        )

    rms = float(rms)
    if not np.isfinite(rms):
        raise SolverError("Calibration solver returned a non-finite error", capture_count=count)

    logger.info(f"Calibration RMS: {rms:.4f} px")

    return CalibrationResult(
        camera_matrix=np.asarray(matrix, dtype=np.float64).reshape(3, 3),
        distortion=np.asarray(dist, dtype=np.float64).ravel()[:5],
        rotations=tuple(np.asarray(r, dtype=np.float64).reshape(3) for r in rvecs),
        translations=tuple(np.asarray(t, dtype=np.float64).reshape(3) for t in tvecs),
        rms=rms,
        image_size=(int(image_size[0]), int(image_size[1])),
    )
