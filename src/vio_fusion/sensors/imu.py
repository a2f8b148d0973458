"""Inertial measurement sample with covariance validation."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .pose import SE3


def _as_vector(value: np.ndarray | None, name: str) -> np.ndarray | None:
    if value is None:
        return None
    vec = np.array(value, dtype=np.float64).flatten()
    if vec.shape != (3,):
        raise ValueError(f"{name} must have 3 elements, got shape {vec.shape}")
    vec.setflags(write=False)
    return vec


def _as_covariance(value: np.ndarray | None, name: str) -> np.ndarray | None:
    """Validate a 3x3 float64 covariance, returning a read-only copy."""
    if value is None:
        return None
    cov = np.asarray(value)
    if cov.size == 0:
        return None
    if cov.shape != (3, 3):
        raise ValueError(f"{name} must be 3x3, got shape {cov.shape}")
    if cov.dtype != np.float64:
        raise ValueError(f"{name} must be float64, got {cov.dtype}")
    cov = cov.copy()
    cov.setflags(write=False)
    return cov


@dataclass(frozen=True, eq=False)
class ImuSample:
    """Single IMU measurement.

    A sample is *empty* when none of its three covariance matrices is set.
    Every covariance that is set must be a 3x3 float64 matrix. The
    angular velocity and linear acceleration each require their covariance,
    and the orientation is present iff its covariance is.

    Attributes:
        angular_velocity: Gyroscope reading (wx, wy, wz) in rad/s
        angular_velocity_covariance: 3x3 covariance about x, y, z
        linear_acceleration: Accelerometer reading (ax, ay, az) in m/s²
        linear_acceleration_covariance: 3x3 covariance along x, y, z
        orientation: Optional orientation quaternion (w, x, y, z)
        orientation_covariance: 3x3 covariance, set iff orientation is set
        local_transform: IMU sensor frame to body frame transform
    """

    angular_velocity: np.ndarray | None = None
    angular_velocity_covariance: np.ndarray | None = None
    linear_acceleration: np.ndarray | None = None
    linear_acceleration_covariance: np.ndarray | None = None
    orientation: np.ndarray | None = None
    orientation_covariance: np.ndarray | None = None
    local_transform: SE3 = field(default_factory=SE3.identity)

    def __post_init__(self) -> None:
        gyr_cov = _as_covariance(
            self.angular_velocity_covariance, "angular_velocity_covariance"
        )
        acc_cov = _as_covariance(
            self.linear_acceleration_covariance, "linear_acceleration_covariance"
        )
        ori_cov = _as_covariance(self.orientation_covariance, "orientation_covariance")

        gyr = _as_vector(self.angular_velocity, "angular_velocity")
        acc = _as_vector(self.linear_acceleration, "linear_acceleration")

        orientation = None
        if self.orientation is not None:
            orientation = np.array(self.orientation, dtype=np.float64).flatten()
            if orientation.shape != (4,):
                raise ValueError(
                    f"orientation must be a (w, x, y, z) quaternion, got shape {orientation.shape}"
                )
            orientation.setflags(write=False)

        if (orientation is None) != (ori_cov is None):
            raise ValueError("orientation and orientation_covariance must be set together")

        if (gyr is None) != (gyr_cov is None):
            raise ValueError("angular_velocity and its covariance must be set together")
        if (acc is None) != (acc_cov is None):
            raise ValueError("linear_acceleration and its covariance must be set together")
        if gyr_cov is not None or acc_cov is not None or ori_cov is not None:
            if gyr is None or gyr_cov is None:
                raise ValueError("Non-empty IMU sample requires angular velocity and its covariance")
            if acc is None or acc_cov is None:
                raise ValueError("Non-empty IMU sample requires linear acceleration and its covariance")

        object.__setattr__(self, "angular_velocity", gyr)
        object.__setattr__(self, "angular_velocity_covariance", gyr_cov)
        object.__setattr__(self, "linear_acceleration", acc)
        object.__setattr__(self, "linear_acceleration_covariance", acc_cov)
        object.__setattr__(self, "orientation", orientation)
        object.__setattr__(self, "orientation_covariance", ori_cov)

    @classmethod
    def empty(cls) -> ImuSample:
        """Return a sample carrying no measurement."""
        return cls()

    @classmethod
    def from_readings(
        cls,
        angular_velocity: np.ndarray,
        linear_acceleration: np.ndarray,
        gyro_variance: float = 1e-4,
        accel_variance: float = 1e-3,
        local_transform: SE3 | None = None,
    ) -> ImuSample:
        """Build a sample from raw readings with isotropic covariances."""
        return cls(
            angular_velocity=angular_velocity,
            angular_velocity_covariance=np.eye(3, dtype=np.float64) * gyro_variance,
            linear_acceleration=linear_acceleration,
            linear_acceleration_covariance=np.eye(3, dtype=np.float64) * accel_variance,
            local_transform=local_transform if local_transform is not None else SE3.identity(),
        )

    def is_empty(self) -> bool:
        """Return True when no covariance matrix is set."""
        return (
            self.orientation_covariance is None
            and self.angular_velocity_covariance is None
            and self.linear_acceleration_covariance is None
        )

    @property
    def has_orientation(self) -> bool:
        """Return True when an orientation estimate is attached."""
        return self.orientation is not None

    def __repr__(self) -> str:
        if self.is_empty():
            return "ImuSample(empty)"
        return (
            f"ImuSample(gyr={np.round(self.angular_velocity, 4).tolist()}, "
            f"acc={np.round(self.linear_acceleration, 4).tolist()})"
        )
