"""Mid-point IMU integration for the reference estimator."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial.transform import Rotation

from ..sensors.pose import SE3


@dataclass
class ImuState:
    """Propagated IMU state.

    Attributes:
        stamp: State time in seconds
        T_WS: IMU sensor frame to world frame
        velocity: Linear velocity in world frame (3,)
        bias_gyro: Gyroscope bias (3,) in rad/s
        bias_accel: Accelerometer bias (3,) in m/s²
        omega_S: Last bias-corrected angular velocity in sensor frame (3,)
    """

    stamp: float
    T_WS: SE3
    velocity: np.ndarray
    bias_gyro: np.ndarray
    bias_accel: np.ndarray
    omega_S: np.ndarray

    def __post_init__(self) -> None:
        self.velocity = np.asarray(self.velocity, dtype=np.float64).flatten()
        self.bias_gyro = np.asarray(self.bias_gyro, dtype=np.float64).flatten()
        self.bias_accel = np.asarray(self.bias_accel, dtype=np.float64).flatten()
        self.omega_S = np.asarray(self.omega_S, dtype=np.float64).flatten()

    @property
    def speed_and_biases(self) -> np.ndarray:
        """Return (velocity, gyro bias, accel bias) stacked as a (9,) vector."""
        return np.concatenate([self.velocity, self.bias_gyro, self.bias_accel])


def gravity_aligned_rotation(linear_acceleration: np.ndarray) -> np.ndarray:
    """Rotation R_WS that maps the measured specific force onto world +z.

    At rest the accelerometer measures the reaction to gravity, which points
    up in a z-up world frame.
    """
    acc = np.asarray(linear_acceleration, dtype=np.float64).flatten()
    norm = np.linalg.norm(acc)
    if norm < 1e-6:
        return np.eye(3)
    rotation, _ = Rotation.align_vectors([[0.0, 0.0, 1.0]], [acc / norm])
    return rotation.as_matrix()


class ImuIntegrator:
    """Integrates IMU measurements to propagate pose and velocity.

    Uses mid-point integration: the rotation is updated with the exponential
    map of the bias-corrected angular rate, and acceleration is rotated into
    the world frame with the half-step orientation.
    """

    # Steps longer than this are treated as a data gap and skipped
    MAX_DT = 0.1

    def __init__(self, gravity_magnitude: float = 9.81) -> None:
        self._gravity = np.array([0.0, 0.0, -gravity_magnitude], dtype=np.float64)

    def initial_state(
        self,
        stamp: float,
        linear_acceleration: np.ndarray,
        angular_velocity: np.ndarray,
    ) -> ImuState:
        """Start at the origin with gravity-aligned orientation, at rest."""
        R = gravity_aligned_rotation(linear_acceleration)
        return ImuState(
            stamp=stamp,
            T_WS=SE3(rotation=R, translation=np.zeros(3)),
            velocity=np.zeros(3),
            bias_gyro=np.zeros(3),
            bias_accel=np.zeros(3),
            omega_S=angular_velocity,
        )

    def integrate(
        self,
        state: ImuState,
        stamp: float,
        linear_acceleration: np.ndarray,
        angular_velocity: np.ndarray,
    ) -> ImuState:
        """Propagate ``state`` to ``stamp`` with one measurement.

        Out-of-order samples and gaps longer than ``MAX_DT`` only move the
        state stamp forward (or leave it untouched).
        """
        dt = stamp - state.stamp
        if dt <= 0.0:
            return state
        if dt > self.MAX_DT:
            return ImuState(
                stamp=stamp,
                T_WS=state.T_WS,
                velocity=state.velocity,
                bias_gyro=state.bias_gyro,
                bias_accel=state.bias_accel,
                omega_S=state.omega_S,
            )

        omega = np.asarray(angular_velocity, dtype=np.float64) - state.bias_gyro
        accel = np.asarray(linear_acceleration, dtype=np.float64) - state.bias_accel

        delta_angle = omega * dt
        R_prev = state.T_WS.rotation
        R_new = R_prev @ Rotation.from_rotvec(delta_angle).as_matrix()
        R_mid = R_prev @ Rotation.from_rotvec(delta_angle / 2).as_matrix()

        accel_world = R_mid @ accel + self._gravity
        v_new = state.velocity + accel_world * dt
        p_new = state.T_WS.translation + state.velocity * dt + 0.5 * accel_world * dt**2

        return ImuState(
            stamp=stamp,
            T_WS=SE3(rotation=R_new, translation=p_new),
            velocity=v_new,
            bias_gyro=state.bias_gyro.copy(),
            bias_accel=state.bias_accel.copy(),
            omega_S=omega,
        )

    @property
    def gravity(self) -> np.ndarray:
        """Return gravity vector in world frame."""
        return self._gravity.copy()
