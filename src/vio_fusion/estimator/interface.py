"""Capability interface of the visual-inertial estimator.

The fusion driver only depends on this contract. Estimators publish their
state through callbacks invoked from their own thread(s); delivery is not
synchronous with the ingestion call that triggered it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from ..sensors.pose import SE3


@dataclass
class MapPoint:
    """Landmark published by the estimator.

    Attributes:
        id: Landmark identifier, stable across publications
        point: 3D position in the estimator world frame
        quality: Estimator-specific quality score (higher is better)
    """

    id: int
    point: np.ndarray  # (3,) world frame
    quality: float = 0.0

    def __post_init__(self) -> None:
        self.point = np.asarray(self.point, dtype=np.float64).flatten()[:3]


# (stamp, T_WS, speed_and_biases (9,), omega_S (3,))
FullStateCallback = Callable[[float, SE3, np.ndarray, np.ndarray], None]
# (stamp, landmarks, transferred landmarks)
LandmarksCallback = Callable[[float, Sequence[MapPoint], Sequence[MapPoint]], None]


class Estimator(ABC):
    """Measurement-ingestion and pose-callback contract."""

    @abstractmethod
    def add_imu_measurement(
        self,
        stamp: float,
        linear_acceleration: np.ndarray,
        angular_velocity: np.ndarray,
    ) -> bool:
        """Submit one IMU measurement.

        Returns:
            True if accepted immediately, False if deferred or dropped
        """

    @abstractmethod
    def add_image(self, stamp: float, camera_index: int, image: np.ndarray) -> bool:
        """Submit one 8-bit grayscale image for camera ``camera_index``.

        Returns:
            True if accepted immediately, False if deferred or dropped
        """

    @abstractmethod
    def set_full_state_callback(self, callback: FullStateCallback) -> None:
        """Install the callback receiving each published pose."""

    @abstractmethod
    def set_landmarks_callback(self, callback: LandmarksCallback) -> None:
        """Install the callback receiving each published landmark set."""

    @abstractmethod
    def set_blocking(self, blocking: bool) -> None:
        """Make ingestion calls block until the measurement is accepted."""

    def shutdown(self) -> None:
        """Stop internal threads. Default: nothing to stop."""
