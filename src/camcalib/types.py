"""
Core data structures for camcalib.

Frozen dataclasses - data containers only. Settings validate themselves on
construction so downstream code can assume a structurally sound model.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np

from .errors import ConfigError

MIN_UNIT_LENGTH = 1e-3


# ============================================================================
# Enumerations
# ============================================================================


class PatternType(Enum):
    """Calibration target geometry."""

    CHESS_BOARD = "chessboard"
    CIRCLE_GRID = "circles_grid"
    ASYMMETRIC_CIRCLE_GRID = "asymmetric_circles_grid"

    @classmethod
    def parse(cls, value: "PatternType | str") -> "PatternType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ConfigError(f"Invalid pattern {value!r} (expected one of: {valid})") from None


class InputType(Enum):
    """Where calibration frames come from."""

    STILL_IMAGES = "images"
    VIDEO_FILES = "video"
    LIVE_STREAM = "live"

    @classmethod
    def parse(cls, value: "InputType | str") -> "InputType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(i.value for i in cls)
            raise ConfigError(f"Invalid input kind {value!r} (expected one of: {valid})") from None


# Stem suffix of the diagnostic image written for a detection
ANNOTATION_SUFFIX = {
    PatternType.CHESS_BOARD: "_corners",
    PatternType.CIRCLE_GRID: "_centers",
    PatternType.ASYMMETRIC_CIRCLE_GRID: "_centers",
}


# ============================================================================
# Settings
# ============================================================================


@dataclass(frozen=True)  # No slots - need properties
class CalibrationSettings:
    """
    Calibration parameters and input source.

    rows/columns count inner corners (chessboard) or circles (circle grids).
    square_size applies to chessboards, center_distance to circle grids.
    capture_delay is in milliseconds.
    """

    rows: int
    columns: int
    square_size: float
    pattern: PatternType = PatternType.CHESS_BOARD
    input_source: InputType = InputType.STILL_IMAGES
    center_distance: float = 0.0

    # Output / behavior flags
    write_extrinsics: bool = False
    write_feature_points: bool = False
    write_grid_points: bool = False
    show_undistorted: bool = False
    flip_horizontal: bool = False

    # Solver policy
    zero_tangential_distortion: bool = False
    fix_principal_point: bool = False
    fix_aspect_ratio: bool = False
    fix_k1: bool = False
    fix_k2: bool = False
    fix_k3: bool = False
    fix_k4: bool = False
    fix_k5: bool = False
    min_captures: int = 3

    # Source locations
    image_folder: Path | None = None
    video_folder: Path | None = None
    capture_store_path: Path | None = None

    # Video sampling / live capture
    frame_budget: int = 25
    capture_delay: int = 0
    device_id: int | None = None
    max_capture_retries: int | None = 100

    def __post_init__(self):
        validate_settings(self)

    @property
    def board_size(self) -> tuple[int, int]:
        """(columns, rows) - the order OpenCV expects for pattern size."""
        return (self.columns, self.rows)

    @property
    def point_count(self) -> int:
        return self.rows * self.columns

    @property
    def is_circle_grid(self) -> bool:
        return self.pattern in (PatternType.CIRCLE_GRID, PatternType.ASYMMETRIC_CIRCLE_GRID)


def validate_settings(settings: CalibrationSettings) -> None:
    """
    Check the structural invariants of a settings model.

    Raises:
        ConfigError: On the first violated invariant
    """
    if not isinstance(settings.rows, int) or not isinstance(settings.columns, int):
        raise ConfigError("Board size must be given as integers")
    if settings.rows <= 0 or settings.columns <= 0:
        raise ConfigError(
            f"Invalid board size: {settings.columns}x{settings.rows} (both must be > 0)"
        )
    if not isinstance(settings.pattern, PatternType):
        raise ConfigError(f"Invalid pattern: {settings.pattern!r}")
    if not isinstance(settings.input_source, InputType):
        raise ConfigError(f"Invalid input kind: {settings.input_source!r}")
    if settings.square_size <= MIN_UNIT_LENGTH:
        raise ConfigError(f"Invalid square size: {settings.square_size}")
    if settings.is_circle_grid and settings.center_distance <= MIN_UNIT_LENGTH:
        raise ConfigError(
            f"Invalid center distance for {settings.pattern.value}: {settings.center_distance}"
        )
    if settings.input_source in (InputType.VIDEO_FILES, InputType.LIVE_STREAM):
        if settings.frame_budget <= 0:
            raise ConfigError(f"Frame budget must be > 0, got {settings.frame_budget}")
    if settings.capture_delay < 0:
        raise ConfigError(f"Capture delay must be >= 0, got {settings.capture_delay}")
    if settings.max_capture_retries is not None and settings.max_capture_retries <= 0:
        raise ConfigError(
            f"max_capture_retries must be > 0 or None, got {settings.max_capture_retries}"
        )
    if settings.min_captures < 1:
        raise ConfigError(f"min_captures must be >= 1, got {settings.min_captures}")


# ============================================================================
# Results
# ============================================================================


@dataclass(frozen=True, slots=True)
class CalibrationResult:
    """
    Output of a single calibration solve.

    rotations/translations hold one Rodrigues / translation vector per
    capture, in capture order.
    """

    camera_matrix: np.ndarray  # 3x3 intrinsic matrix
    distortion: np.ndarray  # (5,) k1, k2, p1, p2, k3
    rotations: tuple[np.ndarray, ...]  # (3,) per capture
    translations: tuple[np.ndarray, ...]  # (3,) per capture
    rms: float  # RMS reported by the solver
    image_size: tuple[int, int]  # (width, height)

    @property
    def capture_count(self) -> int:
        return len(self.rotations)


@dataclass(frozen=True, slots=True)
class ErrorReport:
    """Reprojection error per capture (capture order) and over all points."""

    per_capture: tuple[float, ...]
    total: float
