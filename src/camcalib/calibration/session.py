"""
Calibration run orchestration.

CalibrationSession ties the pieces together:

    source -> FeatureExtractor -> CorrespondenceAccumulator
           -> calibrate_camera -> compute_reprojection_errors

Each session is single use: captures are acquired, the accumulator is
frozen by the solve, and the error report is computed once.
"""

from __future__ import annotations

from threading import Event

import cv2
import numpy as np

import camcalib.logger
from ..capture import CapturedFrame, CaptureSource, FrameProvider, create_capture_source
from ..errors import DetectionMiss
from ..types import CalibrationResult, CalibrationSettings, ErrorReport
from .accumulator import CorrespondenceAccumulator
from .detection import FeatureExtractor, NotFound
from .intrinsic import Solver, calibrate_camera, calibration_flags
from .patterns import generate_object_points
from .reprojection import Projector, compute_reprojection_errors

logger = camcalib.logger.get(__name__)


def _describe(frame: CapturedFrame) -> str:
    if frame.source is not None:
        return f"{frame.source.name} (frame {frame.index})"
    return f"capture {frame.index}"


class CalibrationSession:
    """Single-camera calibration run."""

    def __init__(
        self,
        settings: CalibrationSettings,
        verbose: bool = False,
        extractor: FeatureExtractor | None = None,
        solver: Solver = cv2.calibrateCamera,
        projector: Projector = cv2.projectPoints,
    ):
        self.settings = settings
        self.verbose = verbose
        self.extractor = extractor or FeatureExtractor(settings, verbose=verbose)
        self.solver = solver
        self.projector = projector

        # Constant for fixed settings, shared by every capture
        self.object_points = generate_object_points(settings)
        self.accumulator = CorrespondenceAccumulator(expected_points=settings.point_count)

        self.image_size: tuple[int, int] | None = None
        self.misses = 0
        self.rejected = 0
        self.result: CalibrationResult | None = None
        self.error_report: ErrorReport | None = None

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def _detect(self, frame: CapturedFrame) -> np.ndarray:
        frame_index = frame.index if frame.from_video else None
        outcome = self.extractor.extract(frame.image, frame.source, frame_index)
        if isinstance(outcome, NotFound):
            raise DetectionMiss(f"{outcome.reason} in {_describe(frame)}")
        return outcome.points

    def _matches_size(self, frame: CapturedFrame) -> bool:
        height, width = frame.image.shape[:2]
        if self.image_size is None:
            self.image_size = (width, height)
            return True
        if self.image_size != (width, height):
            logger.warning(
                f"Skipping {_describe(frame)}: size {width}x{height} differs from "
                f"{self.image_size[0]}x{self.image_size[1]}"
            )
            return False
        return True

    def acquire(self, source: CaptureSource) -> int:
        """
        Run the capture loop over source.

        Returns:
            Number of captures added
        """
        added = 0
        for frame in source.frames():
            try:
                points = self._detect(frame)
            except DetectionMiss as e:
                self.misses += 1
                logger.info(str(e))
                continue

            if not self._matches_size(frame):
                self.rejected += 1
                continue

            self.accumulator.add_capture(self.object_points, points)
            added += 1
            logger.debug(f"Pattern found in {_describe(frame)}")

        logger.info(
            f"Acquisition finished: {added} captures added, {self.misses} without pattern, "
            f"{self.rejected} rejected"
        )
        return added

    # ------------------------------------------------------------------
    # Solve and diagnostics
    # ------------------------------------------------------------------

    def calibrate(self) -> CalibrationResult:
        """Solve for intrinsics/extrinsics from the acquired captures."""
        if self.result is not None:
            raise RuntimeError("Session has already been calibrated")

        self.result = calibrate_camera(
            self.accumulator,
            self.image_size or (0, 0),
            flags=calibration_flags(self.settings),
            solver=self.solver,
            min_captures=self.settings.min_captures,
        )
        return self.result

    def compute_reprojection_errors(self) -> ErrorReport:
        if self.result is None:
            raise RuntimeError("Calibrate before computing reprojection errors")
        if self.error_report is not None:
            raise RuntimeError("Reprojection errors have already been computed")

        self.error_report = compute_reprojection_errors(
            self.accumulator, self.result, projector=self.projector
        )
        logger.info(f"Reprojection error: {self.error_report.total:.4f} px")
        return self.error_report

    def run(
        self,
        provider: FrameProvider | None = None,
        stop_event: Event | None = None,
    ) -> tuple[CalibrationResult, ErrorReport]:
        """
        Full pipeline: acquire from the configured source, solve, evaluate.

        Args:
            provider: Live frame provider (live stream input only)
            stop_event: Optional cancellation token for the capture loop

        Returns:
            (CalibrationResult, ErrorReport)
        """
        source = create_capture_source(self.settings, provider=provider, stop_event=stop_event)
        self.acquire(source)
        result = self.calibrate()
        report = self.compute_reprojection_errors()
        return result, report
