"""Pinhole projection with a pluggable distortion model."""

from __future__ import annotations

import cv2
import numpy as np

from .distortion import Distortion, DistortionType, NoDistortion


class PinholeCamera:
    """Pinhole camera geometry used by the estimator's camera system.

    Projection and back-projection go through OpenCV: ``cv2.fisheye`` for
    the equidistant model, the regular calibration functions otherwise.
    """

    def __init__(
        self,
        image_width: int,
        image_height: int,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        distortion: Distortion | None = None,
    ) -> None:
        """Initialize camera geometry.

        Args:
            image_width: Image width in pixels
            image_height: Image height in pixels
            fx: Focal length x (pixels)
            fy: Focal length y (pixels)
            cx: Principal point x (pixels)
            cy: Principal point y (pixels)
            distortion: Lens distortion (default: none)
        """
        self._width = int(image_width)
        self._height = int(image_height)
        self._K = np.array(
            [[fx, 0.0, cx], [0.0, fy, cy], [0.0, 0.0, 1.0]], dtype=np.float64
        )
        self._distortion = distortion if distortion is not None else NoDistortion()

    def project(self, points: np.ndarray) -> np.ndarray:
        """Project Nx3 points in the camera frame to Nx2 pixel coordinates."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0:
            return np.empty((0, 2), dtype=np.float64)

        rvec = np.zeros(3, dtype=np.float64)
        tvec = np.zeros(3, dtype=np.float64)
        object_points = points.reshape(-1, 1, 3)

        if self._distortion.is_fisheye:
            pixels, _ = cv2.fisheye.projectPoints(
                object_points, rvec, tvec, self._K, self._distortion.to_array()
            )
        else:
            pixels, _ = cv2.projectPoints(
                object_points, rvec, tvec, self._K, self._distortion.to_array()
            )
        return pixels.reshape(-1, 2)

    def back_project(self, pixels: np.ndarray) -> np.ndarray:
        """Back-project Nx2 pixels to Nx3 rays on the z = 1 plane."""
        pixels = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
        if len(pixels) == 0:
            return np.empty((0, 3), dtype=np.float64)

        distorted = pixels.reshape(-1, 1, 2)
        if self._distortion.is_fisheye:
            normalized = cv2.fisheye.undistortPoints(
                distorted, self._K, self._distortion.to_array()
            )
        else:
            normalized = cv2.undistortPoints(
                distorted, self._K, self._distortion.to_array()
            )
        normalized = normalized.reshape(-1, 2)
        return np.hstack([normalized, np.ones((len(normalized), 1))])

    def is_in_image(self, pixels: np.ndarray) -> np.ndarray:
        """Return a boolean mask of pixels that fall inside the image."""
        pixels = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
        return (
            (pixels[:, 0] >= 0.0)
            & (pixels[:, 0] < self._width)
            & (pixels[:, 1] >= 0.0)
            & (pixels[:, 1] < self._height)
        )

    @property
    def camera_matrix(self) -> np.ndarray:
        """Return the 3x3 intrinsic matrix."""
        return self._K.copy()

    @property
    def distortion(self) -> Distortion:
        return self._distortion

    @property
    def distortion_type(self) -> DistortionType:
        return self._distortion.distortion_type

    @property
    def image_size(self) -> tuple[int, int]:
        """Return image size as (width, height)."""
        return (self._width, self._height)

    def __repr__(self) -> str:
        return (
            f"PinholeCamera({self._width}x{self._height}, "
            f"f=({self._K[0, 0]:.1f}, {self._K[1, 1]:.1f}), "
            f"c=({self._K[0, 2]:.1f}, {self._K[1, 2]:.1f}), "
            f"{self.distortion_type.value})"
        )
