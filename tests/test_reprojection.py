"""
Tests for camcalib.calibration.reprojection.
"""

import math

import numpy as np
import pytest

from conftest import synthetic_views

from camcalib.calibration.accumulator import CorrespondenceAccumulator
from camcalib.calibration.patterns import object_points_for
from camcalib.calibration.reprojection import compute_reprojection_errors
from camcalib.errors import SolverError, StructuralError
from camcalib.types import CalibrationResult, PatternType


def result_for(count, matrix=None, distortion=None, rotations=None, translations=None):
    return CalibrationResult(
        camera_matrix=np.eye(3) if matrix is None else matrix,
        distortion=np.zeros(5) if distortion is None else distortion,
        rotations=tuple(rotations) if rotations is not None else (np.zeros(3),) * count,
        translations=tuple(translations) if translations is not None else (np.zeros(3),) * count,
        rms=0.0,
        image_size=(640, 480),
    )


def offset_projector(offsets):
    """Projects capture k to its observed points shifted by offsets[k] on x."""
    state = {"k": 0, "observed": None}

    def projector(obj, rvec, tvec, matrix, dist):
        k = state["k"]
        state["k"] += 1
        projected = state["observed"][k].astype(np.float64).copy()
        projected[:, 0] += offsets[k]
        return projected.reshape(-1, 1, 2), None

    return projector, state


class TestComputeReprojectionErrors:
    def test_exact_projection_is_zero(self, sample_intrinsics_matrix, sample_distortion):
        obj = object_points_for(PatternType.CHESS_BOARD, 5, 7, 25.0, 0.0)
        rvecs, tvecs, image_points = synthetic_views(
            obj, sample_intrinsics_matrix, sample_distortion, count=4
        )
        acc = CorrespondenceAccumulator()
        for img in image_points:
            acc.add_capture(obj, img)

        report = compute_reprojection_errors(
            acc,
            result_for(4, sample_intrinsics_matrix, sample_distortion, rvecs, tvecs),
        )

        assert len(report.per_capture) == 4
        for value in report.per_capture:
            assert value == pytest.approx(0.0, abs=1e-3)
        assert report.total == pytest.approx(0.0, abs=1e-3)

    def test_point_weighted_aggregate(self):
        # n1 = 4 with E1 = 2, n2 = 6 with E2 = 3
        acc = CorrespondenceAccumulator()
        obj4 = object_points_for(PatternType.CHESS_BOARD, 2, 2, 1.0, 0.0)
        obj6 = object_points_for(PatternType.CHESS_BOARD, 2, 3, 1.0, 0.0)
        acc.add_capture(obj4, obj4[:, :2] * 10)
        acc.add_capture(obj6, obj6[:, :2] * 10)

        projector, state = offset_projector([1.0, math.sqrt(1.5)])
        state["observed"] = acc.image_points

        report = compute_reprojection_errors(acc, result_for(2), projector=projector)

        assert report.per_capture[0] == pytest.approx(1.0)
        assert report.per_capture[1] == pytest.approx(math.sqrt(9 / 6))
        assert report.total == pytest.approx(math.sqrt(13 / 10))
        # Not the mean of per-capture values
        assert report.total != pytest.approx(sum(report.per_capture) / 2)

    def test_uses_per_capture_extrinsics(self):
        acc = CorrespondenceAccumulator()
        obj = object_points_for(PatternType.CHESS_BOARD, 2, 2, 1.0, 0.0)
        for _ in range(3):
            acc.add_capture(obj, obj[:, :2])

        seen = []

        def projector(points, rvec, tvec, matrix, dist):
            seen.append(float(tvec[0]))
            return points[:, :2].reshape(-1, 1, 2), None

        translations = [np.array([float(k), 0.0, 1.0]) for k in range(3)]
        compute_reprojection_errors(
            acc, result_for(3, translations=translations), projector=projector
        )

        assert seen == [0.0, 1.0, 2.0]

    def test_no_captures(self):
        with pytest.raises(SolverError):
            compute_reprojection_errors(CorrespondenceAccumulator(), result_for(0))

    def test_extrinsics_count_mismatch(self):
        acc = CorrespondenceAccumulator()
        obj = object_points_for(PatternType.CHESS_BOARD, 2, 2, 1.0, 0.0)
        acc.add_capture(obj, obj[:, :2])

        with pytest.raises(StructuralError):
            compute_reprojection_errors(acc, result_for(2))

    def test_projected_count_mismatch(self):
        acc = CorrespondenceAccumulator()
        obj = object_points_for(PatternType.CHESS_BOARD, 2, 2, 1.0, 0.0)
        acc.add_capture(obj, obj[:, :2])

        def projector(points, rvec, tvec, matrix, dist):
            return np.zeros((3, 1, 2)), None

        with pytest.raises(StructuralError):
            compute_reprojection_errors(acc, result_for(1), projector=projector)
