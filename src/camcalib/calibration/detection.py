"""
Pattern feature detection.

Wraps the OpenCV detectors and normalizes their outcome to Found / NotFound.
A miss is a normal outcome - the frame simply contributes no correspondence.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import cv2
import numpy as np

import camcalib.logger
from ..errors import StructuralError
from ..types import ANNOTATION_SUFFIX, CalibrationSettings, PatternType

logger = camcalib.logger.get(__name__)

# (image, pattern, (columns, rows)) -> (found, points)
Detector = Callable[[np.ndarray, PatternType, tuple[int, int]], tuple[bool, "np.ndarray | None"]]

CHESSBOARD_FLAGS = (
    cv2.CALIB_CB_ADAPTIVE_THRESH + cv2.CALIB_CB_NORMALIZE_IMAGE + cv2.CALIB_CB_FAST_CHECK
)
SUBPIX_WINDOW = (11, 11)
SUBPIX_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_COUNT, 30, 0.0001)


# ============================================================================
# Outcomes
# ============================================================================


@dataclass(frozen=True, slots=True)
class Found:
    """Pattern located. points is (rows * columns, 2), row-major."""

    points: np.ndarray
    annotated: np.ndarray | None = None


@dataclass(frozen=True, slots=True)
class NotFound:
    """Pattern not located in the frame."""

    reason: str = "pattern not found"


# ============================================================================
# OpenCV detection
# ============================================================================


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return image


def canonical_order(points: np.ndarray) -> np.ndarray:
    """
    Put a detection of a half-turn symmetric board in row-major order.

    Chessboards and symmetric circle grids look the same rotated by 180
    degrees, so OpenCV may enumerate them from either end. The sequence is
    reversed when its first point lies below-right of its last, so the
    first point is always the top-left one.

    Args:
        points: (n, 2) detected points

    Returns:
        (n, 2) points, starting top-left
    """
    first, last = points[0], points[-1]
    if first[0] + first[1] > last[0] + last[1]:
        return np.ascontiguousarray(points[::-1])
    return points


def detect_pattern(
    image: np.ndarray,
    pattern: PatternType,
    board_size: tuple[int, int],
) -> tuple[bool, np.ndarray | None]:
    """
    Locate pattern features with OpenCV.

    Chessboard corners are refined to sub-pixel accuracy.

    Args:
        image: BGR or grayscale image
        pattern: Target geometry
        board_size: (columns, rows)

    Returns:
        (found, points) where points is (n, 2) float32 or None
    """
    gray = _to_gray(image)

    if pattern is PatternType.CHESS_BOARD:
        found, corners = cv2.findChessboardCorners(gray, board_size, flags=CHESSBOARD_FLAGS)
        if not found or corners is None:
            return False, None
        corners = cv2.cornerSubPix(gray, corners, SUBPIX_WINDOW, (-1, -1), SUBPIX_CRITERIA)
        return True, canonical_order(corners.reshape(-1, 2))

    if pattern is PatternType.CIRCLE_GRID:
        flags = cv2.CALIB_CB_SYMMETRIC_GRID
    elif pattern is PatternType.ASYMMETRIC_CIRCLE_GRID:
        flags = cv2.CALIB_CB_ASYMMETRIC_GRID
    else:
        raise ValueError(f"Unknown pattern: {pattern!r}")

    found, centers = cv2.findCirclesGrid(gray, board_size, flags=flags)
    if not found or centers is None:
        return False, None
    centers = centers.reshape(-1, 2)
    if pattern is PatternType.CIRCLE_GRID:
        centers = canonical_order(centers)
    return True, centers


def draw_pattern(
    image: np.ndarray,
    board_size: tuple[int, int],
    points: np.ndarray,
) -> np.ndarray:
    """Return a copy of image with the detected pattern drawn over it."""
    annotated = image.copy()
    if annotated.ndim == 2:
        annotated = cv2.cvtColor(annotated, cv2.COLOR_GRAY2BGR)
    cv2.drawChessboardCorners(
        annotated, board_size, points.reshape(-1, 1, 2).astype(np.float32), True
    )
    return annotated


def annotated_path(source_path: Path, suffix: str, frame_index: int | None = None) -> Path:
    """
    Path for a diagnostic image next to its source.

    board_03.png + "_corners"          -> board_03_corners.png
    clip.avi + "_corners", frame 12    -> clip_f00012_corners.png
    """
    source_path = Path(source_path)
    if frame_index is not None:
        return source_path.with_name(f"{source_path.stem}_f{frame_index:05d}{suffix}.png")
    return source_path.with_name(f"{source_path.stem}{suffix}{source_path.suffix}")


# ============================================================================
# Adapter
# ============================================================================


class FeatureExtractor:
    """
    Runs the detector for one board configuration.

    With annotate=True, Found results carry an annotated copy of the frame.
    In verbose mode that copy is also written beside the source image.
    """

    def __init__(
        self,
        settings: CalibrationSettings,
        detector: Detector = detect_pattern,
        annotate: bool = False,
        verbose: bool = False,
    ):
        self.settings = settings
        self.detector = detector
        self.annotate = annotate or verbose
        self.verbose = verbose

    def _write_diagnostic(self, out_path: Path, annotated: np.ndarray) -> None:
        try:
            written = cv2.imwrite(str(out_path), annotated)
        except cv2.error as e:
            logger.warning(f"Could not write diagnostic image {out_path}: {e}")
            return
        if not written:
            logger.warning(f"Could not write diagnostic image {out_path}")
        else:
            logger.debug(f"Wrote diagnostic image {out_path}")

    def extract(
        self,
        image: np.ndarray,
        source_path: Path | None = None,
        frame_index: int | None = None,
    ) -> Found | NotFound:
        """
        Detect the pattern in one frame.

        Args:
            image: Frame to search
            source_path: File the frame came from, used for diagnostic output
            frame_index: Frame position when source_path holds many frames (video)

        Returns:
            Found with row-major points, or NotFound
        """
        settings = self.settings
        found, points = self.detector(image, settings.pattern, settings.board_size)

        if not found or points is None:
            return NotFound(f"{settings.pattern.value} not found")

        points = np.asarray(points, dtype=np.float32).reshape(-1, 2)
        if len(points) != settings.point_count:
            raise StructuralError(
                f"Detector returned {len(points)} points, expected {settings.point_count}"
            )

        annotated = None
        if self.annotate:
            annotated = draw_pattern(image, settings.board_size, points)
            if self.verbose and source_path is not None:
                out_path = annotated_path(
                    source_path, ANNOTATION_SUFFIX[settings.pattern], frame_index
                )
                self._write_diagnostic(out_path, annotated)

        return Found(points=points, annotated=annotated)
