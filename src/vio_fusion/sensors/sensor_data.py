"""Combined image + IMU sample consumed by the fusion driver."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .camera_model import CameraModel, StereoCameraModel
from .imu import ImuSample


@dataclass(eq=False)
class SensorData:
    """One call's worth of sensor input.

    Either side may be missing: an IMU-only sample has no image, and an
    image-only sample carries an empty :class:`ImuSample`.

    Attributes:
        stamp: Timestamp in seconds, monotonic across calls
        image: Left/single image, or several camera images concatenated
            horizontally (one equal-width slice per camera model)
        right_image: Right image when ``stereo_model`` is set
        camera_models: One model per horizontal slice of ``image``
        stereo_model: Stereo calibration, takes precedence over camera_models
        imu: IMU measurement taken at ``stamp``
    """

    stamp: float
    image: np.ndarray | None = None
    right_image: np.ndarray | None = None
    camera_models: list[CameraModel] = field(default_factory=list)
    stereo_model: StereoCameraModel | None = None
    imu: ImuSample = field(default_factory=ImuSample.empty)

    @classmethod
    def from_imu(cls, stamp: float, imu: ImuSample) -> SensorData:
        """Create an IMU-only sample."""
        return cls(stamp=stamp, imu=imu)

    @property
    def has_image(self) -> bool:
        """Return True if an image is attached."""
        return self.image is not None and self.image.size > 0

    @property
    def has_imu(self) -> bool:
        """Return True if a non-empty IMU measurement is attached."""
        return not self.imu.is_empty()

    @property
    def stamp_ns(self) -> int:
        """Timestamp in nanoseconds."""
        return int(round(self.stamp * 1e9))
