"""
Tests for camcalib.types dataclasses.
"""

from pathlib import Path

import numpy as np
import pytest

from camcalib.errors import ConfigError
from camcalib.types import (
    CalibrationResult,
    CalibrationSettings,
    ErrorReport,
    InputType,
    PatternType,
)


class TestPatternType:
    def test_parse_names(self):
        assert PatternType.parse("chessboard") is PatternType.CHESS_BOARD
        assert PatternType.parse("circles_grid") is PatternType.CIRCLE_GRID
        assert PatternType.parse("ASYMMETRIC_CIRCLES_GRID") is PatternType.ASYMMETRIC_CIRCLE_GRID

    def test_parse_passthrough(self):
        assert PatternType.parse(PatternType.CIRCLE_GRID) is PatternType.CIRCLE_GRID

    def test_parse_unknown(self):
        with pytest.raises(ConfigError, match="Invalid pattern"):
            PatternType.parse("charuco")


class TestInputType:
    def test_parse_names(self):
        assert InputType.parse("images") is InputType.STILL_IMAGES
        assert InputType.parse("video") is InputType.VIDEO_FILES
        assert InputType.parse("live") is InputType.LIVE_STREAM

    def test_parse_unknown(self):
        with pytest.raises(ConfigError, match="Invalid input kind"):
            InputType.parse("network")


class TestCalibrationSettings:
    def test_creation_with_defaults(self):
        settings = CalibrationSettings(rows=6, columns=9, square_size=25.0)
        assert settings.pattern is PatternType.CHESS_BOARD
        assert settings.input_source is InputType.STILL_IMAGES
        assert settings.board_size == (9, 6)
        assert settings.point_count == 54
        assert settings.max_capture_retries == 100
        assert settings.min_captures == 3
        assert settings.is_circle_grid is False

    def test_frozen(self):
        settings = CalibrationSettings(rows=6, columns=9, square_size=25.0)
        with pytest.raises(AttributeError):
            settings.rows = 7

    @pytest.mark.parametrize("rows,columns", [(0, 9), (6, 0), (-1, 9), (6, -3)])
    def test_invalid_board_size(self, rows, columns):
        with pytest.raises(ConfigError, match="board size"):
            CalibrationSettings(rows=rows, columns=columns, square_size=25.0)

    @pytest.mark.parametrize("square_size", [0.0, 1e-4, -5.0])
    def test_invalid_square_size(self, square_size):
        with pytest.raises(ConfigError, match="square size"):
            CalibrationSettings(rows=6, columns=9, square_size=square_size)

    def test_invalid_pattern(self):
        with pytest.raises(ConfigError, match="pattern"):
            CalibrationSettings(rows=6, columns=9, square_size=25.0, pattern="chessboard")

    def test_invalid_input(self):
        with pytest.raises(ConfigError, match="input"):
            CalibrationSettings(rows=6, columns=9, square_size=25.0, input_source=3)

    def test_circle_grid_needs_center_distance(self):
        with pytest.raises(ConfigError, match="center distance"):
            CalibrationSettings(
                rows=4, columns=11, square_size=1.0, pattern=PatternType.ASYMMETRIC_CIRCLE_GRID
            )

    def test_circle_grid_valid(self):
        settings = CalibrationSettings(
            rows=4,
            columns=11,
            square_size=1.0,
            center_distance=20.0,
            pattern=PatternType.ASYMMETRIC_CIRCLE_GRID,
        )
        assert settings.is_circle_grid is True

    def test_video_needs_frame_budget(self):
        with pytest.raises(ConfigError, match="Frame budget"):
            CalibrationSettings(
                rows=6, columns=9, square_size=25.0,
                input_source=InputType.VIDEO_FILES, frame_budget=0,
            )

    def test_still_images_ignore_frame_budget(self):
        settings = CalibrationSettings(rows=6, columns=9, square_size=25.0, frame_budget=0)
        assert settings.frame_budget == 0

    def test_negative_delay(self):
        with pytest.raises(ConfigError, match="delay"):
            CalibrationSettings(rows=6, columns=9, square_size=25.0, capture_delay=-1)

    def test_retry_bound(self):
        with pytest.raises(ConfigError, match="max_capture_retries"):
            CalibrationSettings(rows=6, columns=9, square_size=25.0, max_capture_retries=0)
        unbounded = CalibrationSettings(
            rows=6, columns=9, square_size=25.0, max_capture_retries=None
        )
        assert unbounded.max_capture_retries is None

    def test_paths(self):
        settings = CalibrationSettings(
            rows=6, columns=9, square_size=25.0, image_folder=Path("/data/images")
        )
        assert settings.image_folder == Path("/data/images")
        assert settings.video_folder is None


class TestCalibrationResult:
    def test_capture_count(self, sample_intrinsics_matrix, sample_distortion):
        result = CalibrationResult(
            camera_matrix=sample_intrinsics_matrix,
            distortion=sample_distortion,
            rotations=(np.zeros(3), np.zeros(3)),
            translations=(np.zeros(3), np.ones(3)),
            rms=0.2,
            image_size=(1280, 720),
        )
        assert result.capture_count == 2

    def test_frozen(self, sample_intrinsics_matrix, sample_distortion):
        result = CalibrationResult(
            camera_matrix=sample_intrinsics_matrix,
            distortion=sample_distortion,
            rotations=(),
            translations=(),
            rms=0.2,
            image_size=(1280, 720),
        )
        with pytest.raises(AttributeError):
            result.rms = 0.1


class TestErrorReport:
    def test_creation(self):
        report = ErrorReport(per_capture=(1.0, 2.0), total=1.5)
        assert report.per_capture == (1.0, 2.0)
        assert report.total == 1.5
