"""
Correspondence collection for a calibration run.

The accumulator grows during acquisition and is frozen before solving.
"""

from __future__ import annotations

import numpy as np

from ..errors import StructuralError


def _readonly(points: np.ndarray, dims: int, name: str) -> np.ndarray:
    arr = np.array(points, dtype=np.float32, copy=True)
    if arr.ndim == 3 and arr.shape[1] == 1:
        arr = arr[:, 0, :]  # OpenCV (n, 1, d) layout
    if arr.ndim != 2 or arr.shape[1] != dims:
        raise StructuralError(f"{name} must have shape (n, {dims}), got {arr.shape}")
    arr.setflags(write=False)
    return arr


class CorrespondenceAccumulator:
    """
    Ordered (object_points, image_points) pairs, one per capture.

    Every capture has as many image points as object points and, when
    expected_points is given, exactly that many of each.
    """

    def __init__(self, expected_points: int | None = None):
        self.expected_points = expected_points
        self._object_points: list[np.ndarray] = []
        self._image_points: list[np.ndarray] = []
        self._frozen = False

    def add_capture(self, object_points: np.ndarray, image_points: np.ndarray) -> int:
        """
        Append one capture.

        Returns:
            Index of the new capture

        Raises:
            StructuralError: If frozen, or the point sets are inconsistent.
                State is unchanged on failure.
        """
        if self._frozen:
            raise StructuralError("Cannot add captures after the accumulator is frozen")

        obj = _readonly(object_points, 3, "object_points")
        img = _readonly(image_points, 2, "image_points")

        if len(obj) != len(img):
            raise StructuralError(
                f"Point count mismatch: {len(obj)} object points vs {len(img)} image points"
            )
        if len(obj) == 0:
            raise StructuralError("Capture has no points")
        if self.expected_points is not None and len(obj) != self.expected_points:
            raise StructuralError(
                f"Capture has {len(obj)} points, expected {self.expected_points}"
            )

        self._object_points.append(obj)
        self._image_points.append(img)
        return len(self._object_points) - 1

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def size(self) -> int:
        return len(self._object_points)

    def __len__(self) -> int:
        return self.size()

    def __getitem__(self, index: int) -> tuple[np.ndarray, np.ndarray]:
        return self._object_points[index], self._image_points[index]

    def __iter__(self):
        return iter(zip(self._object_points, self._image_points))

    @property
    def object_points(self) -> tuple[np.ndarray, ...]:
        return tuple(self._object_points)

    @property
    def image_points(self) -> tuple[np.ndarray, ...]:
        return tuple(self._image_points)

    @property
    def total_points(self) -> int:
        return sum(len(obj) for obj in self._object_points)
