"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after test."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def sample_intrinsics_matrix():
    """Typical camera intrinsics matrix for a 1280x720 sensor."""
    return np.array([
        [800.0, 0.0, 640.0],
        [0.0, 800.0, 360.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


@pytest.fixture
def sample_distortion():
    """Typical distortion coefficients (k1, k2, p1, p2, k3)."""
    return np.array([0.1, -0.25, 0.001, -0.001, 0.1], dtype=np.float64)


@pytest.fixture
def chessboard_settings(temp_dir):
    """7x5 inner-corner chessboard read from temp_dir/images."""
    from camcalib.types import CalibrationSettings, InputType, PatternType
    return CalibrationSettings(
        rows=5,
        columns=7,
        square_size=25.0,
        pattern=PatternType.CHESS_BOARD,
        input_source=InputType.STILL_IMAGES,
        image_folder=temp_dir / "images",
    )


def render_chessboard(columns: int, rows: int, square_px: int = 40, margin: int = 60) -> np.ndarray:
    """
    Render a clean chessboard with columns x rows inner corners as a BGR image.
    """
    squares_x = columns + 1
    squares_y = rows + 1
    height = squares_y * square_px + 2 * margin
    width = squares_x * square_px + 2 * margin
    img = np.full((height, width), 255, dtype=np.uint8)
    for r in range(squares_y):
        for c in range(squares_x):
            if (r + c) % 2 == 0:
                y0 = margin + r * square_px
                x0 = margin + c * square_px
                img[y0:y0 + square_px, x0:x0 + square_px] = 0
    return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)


def synthetic_views(object_points, camera_matrix, distortion, count=8):
    """
    Project a planar board into `count` distinct poses.

    Returns:
        (rvecs, tvecs, image_points) lists
    """
    center = object_points.mean(axis=0)
    rvecs, tvecs, image_points = [], [], []
    for k in range(count):
        angle = 0.15 + 0.05 * k
        rvec = np.array([
            angle * np.cos(k),
            angle * np.sin(k),
            0.05 * (k - count / 2),
        ], dtype=np.float64)
        tvec = np.array([
            -center[0] + 10.0 * (k % 3 - 1),
            -center[1] + 8.0 * (k % 2),
            500.0 + 40.0 * k,
        ], dtype=np.float64)
        projected, _ = cv2.projectPoints(
            object_points.astype(np.float64), rvec, tvec, camera_matrix, distortion
        )
        rvecs.append(rvec)
        tvecs.append(tvec)
        image_points.append(projected.reshape(-1, 2).astype(np.float32))
    return rvecs, tvecs, image_points
