"""
Configuration loading/saving.

Pure functions operating on dataclasses.
- TOML settings file describing the board, input source and solver policy
- TOML calibration output (intrinsics, errors, optional extrinsics/points)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import rtoml

from .calibration.accumulator import CorrespondenceAccumulator
from .errors import ConfigError
from .types import (
    CalibrationResult,
    CalibrationSettings,
    ErrorReport,
    InputType,
    PatternType,
)


# ============================================================================
# Settings
# ============================================================================


def _path_or_none(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(value).expanduser()


def _int(section: dict, key: str, default: int | None) -> int | None:
    value = section.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    return value


def _float(section: dict, key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    return float(value)


def settings_from_dict(data: dict) -> CalibrationSettings:
    """
    Build validated settings from parsed TOML data.

    Raises:
        ConfigError: On missing board size or any invalid value
    """
    board = data.get("board", {})
    source = data.get("input", {})
    solve = data.get("calibrate", {})
    output = data.get("output", {})

    if "width" not in board or "height" not in board:
        raise ConfigError("[board] width and height are required")

    max_retries = _int(source, "max_retries", 100)
    if max_retries == 0:
        max_retries = None  # 0 in the file means retry forever

    return CalibrationSettings(
        rows=_int(board, "height", None),
        columns=_int(board, "width", None),
        square_size=_float(board, "square_size", 0.0),
        center_distance=_float(board, "center_distance", 0.0),
        pattern=PatternType.parse(board.get("pattern", PatternType.CHESS_BOARD.value)),
        input_source=InputType.parse(source.get("kind", InputType.STILL_IMAGES.value)),
        image_folder=_path_or_none(source.get("image_folder")),
        video_folder=_path_or_none(source.get("video_folder")),
        capture_store_path=_path_or_none(source.get("capture_store_path")),
        frame_budget=_int(source, "frame_count", 25),
        capture_delay=_int(source, "delay_ms", 0),
        flip_horizontal=bool(source.get("flip_horizontal", False)),
        device_id=_int(source, "device_id", None),
        max_capture_retries=max_retries,
        zero_tangential_distortion=bool(solve.get("zero_tangential_distortion", False)),
        fix_aspect_ratio=bool(solve.get("fix_aspect_ratio", False)),
        fix_principal_point=bool(solve.get("fix_principal_point", False)),
        fix_k1=bool(solve.get("fix_k1", False)),
        fix_k2=bool(solve.get("fix_k2", False)),
        fix_k3=bool(solve.get("fix_k3", False)),
        fix_k4=bool(solve.get("fix_k4", False)),
        fix_k5=bool(solve.get("fix_k5", False)),
        min_captures=_int(solve, "min_captures", 3),
        write_extrinsics=bool(output.get("write_extrinsics", False)),
        write_feature_points=bool(output.get("write_feature_points", False)),
        write_grid_points=bool(output.get("write_grid_points", False)),
        show_undistorted=bool(output.get("show_undistorted", False)),
    )


def settings_to_dict(settings: CalibrationSettings) -> dict:
    """Inverse of settings_from_dict. None-valued entries are left out."""
    source = {
        "kind": settings.input_source.value,
        "image_folder": str(settings.image_folder) if settings.image_folder else None,
        "video_folder": str(settings.video_folder) if settings.video_folder else None,
        "capture_store_path": (
            str(settings.capture_store_path) if settings.capture_store_path else None
        ),
        "frame_count": settings.frame_budget,
        "delay_ms": settings.capture_delay,
        "flip_horizontal": settings.flip_horizontal,
        "device_id": settings.device_id,
        "max_retries": settings.max_capture_retries or 0,
    }

    return {
        "board": {
            "width": settings.columns,
            "height": settings.rows,
            "pattern": settings.pattern.value,
            "square_size": settings.square_size,
            "center_distance": settings.center_distance,
        },
        "input": {k: v for k, v in source.items() if v is not None},
        "calibrate": {
            "zero_tangential_distortion": settings.zero_tangential_distortion,
            "fix_aspect_ratio": settings.fix_aspect_ratio,
            "fix_principal_point": settings.fix_principal_point,
            "fix_k1": settings.fix_k1,
            "fix_k2": settings.fix_k2,
            "fix_k3": settings.fix_k3,
            "fix_k4": settings.fix_k4,
            "fix_k5": settings.fix_k5,
            "min_captures": settings.min_captures,
        },
        "output": {
            "write_extrinsics": settings.write_extrinsics,
            "write_feature_points": settings.write_feature_points,
            "write_grid_points": settings.write_grid_points,
            "show_undistorted": settings.show_undistorted,
        },
    }


def load_settings(path: Path) -> CalibrationSettings:
    """
    Load calibration settings from a TOML file.

    Relative folder paths are resolved against the settings file's directory.

    Args:
        path: Path to settings TOML

    Returns:
        Validated CalibrationSettings

    Raises:
        ConfigError: If the file is malformed or a value is invalid
    """
    path = Path(path)
    try:
        data = rtoml.load(path)
    except rtoml.TomlParsingError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    source = data.get("input", {})
    for key in ("image_folder", "video_folder", "capture_store_path"):
        value = source.get(key)
        if value and not Path(value).expanduser().is_absolute():
            source[key] = str(path.parent / value)

    return settings_from_dict(data)


def save_settings(settings: CalibrationSettings, path: Path) -> None:
    """
    Save calibration settings to a TOML file.

    Args:
        settings: CalibrationSettings dataclass
        path: Path to save settings TOML
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        rtoml.dump(settings_to_dict(settings), f)


def create_default_settings() -> CalibrationSettings:
    """
    Default settings: 9x6 inner-corner chessboard, 25 mm squares,
    images read from ./images.
    """
    return CalibrationSettings(
        rows=6,
        columns=9,
        square_size=25.0,
        center_distance=15.0,
        pattern=PatternType.CHESS_BOARD,
        input_source=InputType.STILL_IMAGES,
        image_folder=Path("images"),
        video_folder=Path("videos"),
        capture_store_path=Path("captures"),
        frame_budget=25,
        capture_delay=100,
    )


# ============================================================================
# Calibration output
# ============================================================================


def save_calibration_to_toml(
    path: Path,
    result: CalibrationResult,
    report: ErrorReport,
    settings: CalibrationSettings,
    accumulator: CorrespondenceAccumulator | None = None,
) -> None:
    """
    Save a calibration result to a TOML file.

    Extrinsics, detected feature points and the reference grid are only
    written when the matching settings flags are on. Feature points and the
    grid come from the accumulator and are skipped without one.

    Args:
        path: Path to calibration TOML
        result: Solver output
        report: Reprojection errors for result
        settings: Settings the calibration ran with
        accumulator: Captures the calibration was computed from
    """
    data: dict[str, Any] = {
        "board": {
            "width": settings.columns,
            "height": settings.rows,
            "pattern": settings.pattern.value,
            "square_size": settings.square_size,
            "center_distance": settings.center_distance,
        },
        "image_size": list(result.image_size),
        "capture_count": result.capture_count,
        "camera_matrix": result.camera_matrix.tolist(),
        "distortion": result.distortion.tolist(),
        "solver_rms": result.rms,
        "reprojection_error": report.total,
        "per_capture_error": list(report.per_capture),
    }

    if settings.write_extrinsics:
        data["extrinsics"] = {
            "rotations": [r.tolist() for r in result.rotations],
            "translations": [t.tolist() for t in result.translations],
        }

    if accumulator is not None:
        if settings.write_feature_points:
            data["feature_points"] = [img.tolist() for img in accumulator.image_points]
        if settings.write_grid_points and accumulator.size() > 0:
            data["grid_points"] = accumulator[0][0].tolist()

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        rtoml.dump(data, f)


def load_calibration_from_toml(path: Path) -> CalibrationResult | None:
    """
    Load a calibration result from a TOML file.

    Rotations/translations are empty when extrinsics were not written.

    Args:
        path: Path to calibration TOML

    Returns:
        CalibrationResult, or None if file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        return None

    data = rtoml.load(path)
    extrinsics = data.get("extrinsics", {})

    return CalibrationResult(
        camera_matrix=np.array(data["camera_matrix"], dtype=np.float64),
        distortion=np.array(data["distortion"], dtype=np.float64),
        rotations=tuple(np.array(r, dtype=np.float64) for r in extrinsics.get("rotations", [])),
        translations=tuple(
            np.array(t, dtype=np.float64) for t in extrinsics.get("translations", [])
        ),
        rms=float(data["solver_rms"]),
        image_size=tuple(data["image_size"]),
    )
