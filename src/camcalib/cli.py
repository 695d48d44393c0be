#!/usr/bin/env python3
"""
camcalib CLI - single-camera calibration.

Usage:
    camcalib calibrate SETTINGS.toml [-o OUTPUT] [-v] [--device N]
    camcalib template PATH      - Write a default settings file
    camcalib --help             - Show this help
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

import camcalib.logger
from camcalib.calibration.session import CalibrationSession
from camcalib.config import (
    create_default_settings,
    load_settings,
    save_calibration_to_toml,
    save_settings,
)
from camcalib.errors import CalibrationError

logger = camcalib.logger.get(__name__)


def calibrate_main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="camcalib calibrate", description="Calibrate a camera from a settings file"
    )
    parser.add_argument("settings", type=Path, help="Settings TOML file")
    parser.add_argument(
        "-o", "--output", type=Path, default=Path("calibration.toml"),
        help="Where to write the calibration result",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Write annotated diagnostic images and log at DEBUG level",
    )
    parser.add_argument("--device", type=int, default=None, help="Live capture device id")
    args = parser.parse_args(argv)

    if args.verbose:
        camcalib.logger.set_level("DEBUG")

    try:
        settings = load_settings(args.settings)
        if args.device is not None:
            settings = replace(settings, device_id=args.device)

        session = CalibrationSession(settings, verbose=args.verbose)
        result, report = session.run()
        save_calibration_to_toml(args.output, result, report, settings, session.accumulator)
    except (CalibrationError, OSError) as e:
        logger.error(f"Calibration failed: {e}")
        return 1

    print(f"Captures:           {result.capture_count}")
    print(f"Reprojection error: {report.total:.4f} px")
    print(f"Saved to {args.output}")
    return 0


def template_main(argv: list[str]) -> int:
    if not argv:
        print("Usage: camcalib template PATH")
        return 1
    path = Path(argv[0])
    save_settings(create_default_settings(), path)
    print(f"Wrote default settings to {path}")
    return 0


def main():
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(__doc__)
        print("Commands:")
        print("  calibrate  Acquire frames, solve, and report reprojection error")
        print("  template   Write a default settings file to edit")
        print()
        return 0

    command = sys.argv[1]
    argv = sys.argv[2:]

    if command == "calibrate":
        return calibrate_main(argv)

    elif command == "template":
        return template_main(argv)

    else:
        print(f"Unknown command: {command}")
        print("Run 'camcalib --help' for usage")
        return 1


if __name__ == "__main__":
    sys.exit(main())
