# camcalib - single-camera calibration from images, video or a live stream

__version__ = "0.1.0"

# Errors
from camcalib.errors import (
    CalibrationError,
    ConfigError,
    SourceError,
    CaptureError,
    DetectionMiss,
    StructuralError,
    SolverError,
)

# Core types
from camcalib.types import (
    PatternType,
    InputType,
    CalibrationSettings,
    CalibrationResult,
    ErrorReport,
    validate_settings,
)

# Capture sources
from camcalib.capture import (
    CapturedFrame,
    CaptureSource,
    ImageFolderSource,
    VideoFolderSource,
    LiveStreamSource,
    DeviceFrameProvider,
    CallableFrameProvider,
    create_capture_source,
)

# Calibration
from camcalib.calibration import (
    generate_object_points,
    FeatureExtractor,
    CorrespondenceAccumulator,
    calibrate_camera,
    compute_reprojection_errors,
    CalibrationSession,
)

# Configuration
from camcalib.config import (
    load_settings,
    save_settings,
    save_calibration_to_toml,
    load_calibration_from_toml,
)

__all__ = [
    # Errors
    "CalibrationError",
    "ConfigError",
    "SourceError",
    "CaptureError",
    "DetectionMiss",
    "StructuralError",
    "SolverError",
    # Core types
    "PatternType",
    "InputType",
    "CalibrationSettings",
    "CalibrationResult",
    "ErrorReport",
    "validate_settings",
    # Capture
    "CapturedFrame",
    "CaptureSource",
    "ImageFolderSource",
    "VideoFolderSource",
    "LiveStreamSource",
    "DeviceFrameProvider",
    "CallableFrameProvider",
    "create_capture_source",
    # Calibration
    "generate_object_points",
    "FeatureExtractor",
    "CorrespondenceAccumulator",
    "calibrate_camera",
    "compute_reprojection_errors",
    "CalibrationSession",
    # Configuration
    "load_settings",
    "save_settings",
    "save_calibration_to_toml",
    "load_calibration_from_toml",
]
