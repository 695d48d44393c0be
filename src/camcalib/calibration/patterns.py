"""
Reference geometry for the supported calibration targets.

Pure functions - no classes, no state.
"""

from __future__ import annotations

import numpy as np

from ..errors import ConfigError
from ..types import CalibrationSettings, PatternType


def object_points_for(
    pattern: PatternType,
    rows: int,
    columns: int,
    square_size: float,
    center_distance: float,
) -> np.ndarray:
    """
    Get the 3D positions of all pattern features in the board frame.

    Points are row-major: row 0 first, columns increasing within a row.
    All points lie on the z = 0 plane.

    Args:
        pattern: Target geometry
        rows: Number of feature rows
        columns: Number of features per row
        square_size: Chessboard square edge length
        center_distance: Spacing between circle centers

    Returns:
        (rows * columns, 3) float32 array

    Raises:
        ConfigError: If the pattern is not a supported PatternType
    """
    i, j = np.mgrid[0:rows, 0:columns]
    i = i.ravel().astype(np.float64)
    j = j.ravel().astype(np.float64)

    if pattern is PatternType.CHESS_BOARD:
        x = j * square_size
        y = i * square_size
    elif pattern is PatternType.CIRCLE_GRID:
        x = j * center_distance
        y = i * center_distance
    elif pattern is PatternType.ASYMMETRIC_CIRCLE_GRID:
        x = (2 * j + 0.5 * i) * center_distance
        y = i * center_distance
    else:
        raise ConfigError(f"Pattern not supported: {pattern!r}")

    points = np.zeros((rows * columns, 3), dtype=np.float32)
    points[:, 0] = x
    points[:, 1] = y
    return points


def generate_object_points(settings: CalibrationSettings) -> np.ndarray:
    """Reference points for the board described by settings."""
    return object_points_for(
        settings.pattern,
        settings.rows,
        settings.columns,
        settings.square_size,
        settings.center_distance,
    )
