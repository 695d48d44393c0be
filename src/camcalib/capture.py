"""
Frame sources for calibration.

Three variants share one interface - CaptureSource.frames() - so the
orchestrator has a single acquisition loop:

- ImageFolderSource: every decodable image in a directory
- VideoFolderSource: frame_budget consecutive frames from each video
- LiveStreamSource: frame_budget frames from a device or SDK callback

Sources are one-shot: once a sequence has been consumed to completion,
frames() cannot be called again.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from threading import Event
from typing import Any, Callable, Iterator, Protocol

import cv2
import numpy as np

import camcalib.logger
from .errors import CaptureError, ConfigError, SourceError
from .types import ANNOTATION_SUFFIX, CalibrationSettings, InputType

logger = camcalib.logger.get(__name__)


@dataclass(frozen=True, slots=True)
class CapturedFrame:
    """A raw frame and where it came from."""

    image: np.ndarray
    index: int  # position within its source (file order, video frame, capture count)
    source: Path | None = None
    from_video: bool = False  # source holds many frames


def _is_valid_image(image: Any) -> bool:
    return image is not None and getattr(image, "size", 0) > 0


def _require_directory(folder: Path | None, kind: str) -> Path:
    if folder is None:
        raise SourceError(f"No {kind} folder configured")
    folder = Path(folder)
    if not folder.is_dir():
        raise SourceError(f"{kind.capitalize()} path should be a valid directory: {folder}")
    return folder


_DIAGNOSTIC_SUFFIXES = tuple(sorted(set(ANNOTATION_SUFFIX.values())))


def _regular_files(folder: Path) -> list[Path]:
    """Sorted files in folder, without diagnostic images from earlier verbose runs."""
    return sorted(
        p for p in folder.iterdir()
        if p.is_file() and not p.stem.endswith(_DIAGNOSTIC_SUFFIXES)
    )


# ============================================================================
# Base class
# ============================================================================


class CaptureSource(ABC):
    """Lazy, finite, one-shot sequence of frames."""

    def __init__(self, stop_event: Event | None = None):
        self.stop_event = stop_event
        self._consumed = False

    def frames(self) -> Iterator[CapturedFrame]:
        """
        Start iterating frames.

        Raises:
            RuntimeError: If the source was already consumed
            SourceError: If the source root is unusable
        """
        if self._consumed:
            raise RuntimeError(f"{type(self).__name__} has already been consumed")
        self._check()
        return self._iterate()

    def _iterate(self) -> Iterator[CapturedFrame]:
        yield from self._generate()
        self._consumed = True

    def _stopped(self) -> bool:
        if self.stop_event is not None and self.stop_event.is_set():
            logger.info("Capture cancelled")
            return True
        return False

    def _check(self) -> None:
        """Validate the source before iteration starts."""

    @abstractmethod
    def _generate(self) -> Iterator[CapturedFrame]:
        ...


# ============================================================================
# Still images
# ============================================================================


class ImageFolderSource(CaptureSource):
    """Every regular file in a folder that decodes as an image."""

    def __init__(
        self,
        folder: Path | None,
        reader: Callable[[str], np.ndarray | None] = cv2.imread,
        stop_event: Event | None = None,
    ):
        super().__init__(stop_event)
        self.folder = folder
        self.reader = reader
        self.skipped = 0

    def _check(self) -> None:
        self.folder = _require_directory(self.folder, "image")

    def _decode(self, path: Path) -> np.ndarray:
        image = self.reader(str(path))
        if not _is_valid_image(image):
            raise CaptureError(f"Could not decode {path.name}")
        return image

    def _generate(self) -> Iterator[CapturedFrame]:
        for index, path in enumerate(_regular_files(self.folder)):
            if self._stopped():
                return
            try:
                image = self._decode(path)
            except CaptureError as e:
                self.skipped += 1
                logger.debug(f"Skipping file: {e}")
                continue
            yield CapturedFrame(image=image, index=index, source=path)


# ============================================================================
# Video files
# ============================================================================


def sampling_start_index(total_frames: int, frame_budget: int) -> int:
    """
    Frame index where sampling starts in a video.

    frame_budget consecutive frames are read from this index onward.
    """
    return max(total_frames - 1, 0) // frame_budget


class VideoFolderSource(CaptureSource):
    """
    frame_budget consecutive frames from every video in a folder.

    Files that cannot be opened are skipped. If a frame cannot be decoded,
    the rest of that file is abandoned since the stream position is no
    longer reliable.
    """

    def __init__(
        self,
        folder: Path | None,
        frame_budget: int,
        opener: Callable[[str], Any] = cv2.VideoCapture,
        stop_event: Event | None = None,
    ):
        super().__init__(stop_event)
        if frame_budget <= 0:
            raise ConfigError(f"Frame budget must be > 0, got {frame_budget}")
        self.folder = folder
        self.frame_budget = frame_budget
        self.opener = opener
        self.skipped_files = 0

    def _check(self) -> None:
        self.folder = _require_directory(self.folder, "video")

    def _generate(self) -> Iterator[CapturedFrame]:
        for path in _regular_files(self.folder):
            if self._stopped():
                return
            capture = self.opener(str(path))
            try:
                if not capture.isOpened():
                    self.skipped_files += 1
                    logger.warning(f"File is not a valid video, skipping: {path.name}")
                    continue

                total_frames = int(capture.get(cv2.CAP_PROP_FRAME_COUNT))
                start = sampling_start_index(total_frames, self.frame_budget)
                capture.set(cv2.CAP_PROP_POS_FRAMES, start)
                logger.info(
                    f"Sampling {self.frame_budget} frames from {path.name} "
                    f"starting at frame {start} of {total_frames}"
                )

                for offset in range(self.frame_budget):
                    if self._stopped():
                        return
                    ok, frame = capture.read()
                    if not ok or not _is_valid_image(frame):
                        logger.warning(
                            f"Frame {start + offset} of {path.name} is invalid, "
                            f"abandoning remaining {self.frame_budget - offset} frames"
                        )
                        break
                    yield CapturedFrame(
                        image=frame, index=start + offset, source=path, from_video=True
                    )
            finally:
                capture.release()


# ============================================================================
# Live stream
# ============================================================================


class FrameProvider(Protocol):
    """Anything that hands out live frames; None means no frame this time."""

    def next_frame(self) -> np.ndarray | None:
        ...


class DeviceFrameProvider:
    """Frames from a local capture device, opened on first use."""

    def __init__(self, device_id: int | None = None):
        if device_id is None:
            logger.warning("device_id not set, default value of 0 will be used")
            device_id = 0
        self.device_id = device_id
        self._capture = None

    def open(self) -> None:
        if self._capture is not None:
            return
        capture = cv2.VideoCapture(self.device_id, cv2.CAP_ANY)
        if not capture.isOpened():
            capture.release()
            raise SourceError(f"Failed to open capture device {self.device_id}")
        self._capture = capture

    def next_frame(self) -> np.ndarray | None:
        self.open()
        ok, frame = self._capture.read()
        return frame if ok else None

    def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None


class CallableFrameProvider:
    """Adapts an SDK-style callback that takes an opaque handle."""

    def __init__(self, get_image: Callable[[Any], np.ndarray | None], handle: Any = None):
        self.get_image = get_image
        self.handle = handle

    def next_frame(self) -> np.ndarray | None:
        return self.get_image(self.handle)


class LiveStreamSource(CaptureSource):
    """
    Exactly frame_budget successful frames from a provider.

    A missing frame is retried at the same index and does not count toward
    the budget. More than max_retries consecutive misses raises SourceError;
    max_retries=None retries forever.
    """

    def __init__(
        self,
        provider: FrameProvider,
        frame_budget: int,
        delay_ms: int = 0,
        max_retries: int | None = 100,
        flip: bool = False,
        store_path: Path | None = None,
        stop_event: Event | None = None,
    ):
        super().__init__(stop_event)
        if frame_budget <= 0:
            raise ConfigError(f"Frame budget must be > 0, got {frame_budget}")
        self.provider = provider
        self.frame_budget = frame_budget
        self.delay_ms = delay_ms
        self.max_retries = max_retries
        self.flip = flip
        self.store_path = Path(store_path) if store_path is not None else None
        self.failed_attempts = 0

    def _check(self) -> None:
        if self.store_path is not None:
            self.store_path.mkdir(parents=True, exist_ok=True)

    def _next(self) -> np.ndarray:
        frame = self.provider.next_frame()
        if not _is_valid_image(frame):
            raise CaptureError("Image wasn't captured")
        return frame

    def _store(self, frame: np.ndarray, index: int) -> Path | None:
        if self.store_path is None:
            return None
        path = self.store_path / f"capture_{index:03d}.png"
        if not cv2.imwrite(str(path), frame):
            logger.warning(f"Could not store captured frame at {path}")
            return None
        return path

    def _generate(self) -> Iterator[CapturedFrame]:
        logger.info(f"Capturing {self.frame_budget} frames")
        captured = 0
        consecutive_failures = 0
        try:
            while captured < self.frame_budget:
                if self._stopped():
                    return
                try:
                    frame = self._next()
                except CaptureError as e:
                    self.failed_attempts += 1
                    consecutive_failures += 1
                    if self.max_retries is not None and consecutive_failures > self.max_retries:
                        raise SourceError(
                            f"No frame after {consecutive_failures} attempts "
                            f"({captured}/{self.frame_budget} captured)"
                        ) from e
                    logger.warning(f"{e}. Trying again ...")
                    continue

                consecutive_failures = 0
                if self.flip:
                    frame = cv2.flip(frame, 0)
                source = self._store(frame, captured)
                yield CapturedFrame(image=frame, index=captured, source=source)
                captured += 1

                if self.delay_ms and captured < self.frame_budget:
                    time.sleep(self.delay_ms / 1000.0)
        finally:
            close = getattr(self.provider, "close", None)
            if close is not None:
                close()


# ============================================================================
# Factory
# ============================================================================


def create_capture_source(
    settings: CalibrationSettings,
    provider: FrameProvider | None = None,
    stop_event: Event | None = None,
) -> CaptureSource:
    """
    Pick the capture source variant for settings.input_source.

    Args:
        settings: Validated calibration settings
        provider: Live frame provider; a local device is used if None
        stop_event: Optional cancellation token checked every iteration

    Returns:
        CaptureSource ready to iterate
    """
    source = settings.input_source

    if source is InputType.STILL_IMAGES:
        return ImageFolderSource(settings.image_folder, stop_event=stop_event)

    if source is InputType.VIDEO_FILES:
        return VideoFolderSource(
            settings.video_folder, settings.frame_budget, stop_event=stop_event
        )

    if source is InputType.LIVE_STREAM:
        if provider is None:
            provider = DeviceFrameProvider(settings.device_id)
        return LiveStreamSource(
            provider,
            settings.frame_budget,
            delay_ms=settings.capture_delay,
            max_retries=settings.max_capture_retries,
            flip=settings.flip_horizontal,
            store_path=settings.capture_store_path,
            stop_event=stop_event,
        )

    raise ConfigError(f"Input type not supported: {source!r}")
