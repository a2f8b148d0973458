"""Frame conventions between sensor descriptors, estimator and odometry output.

Three conventions meet here:

- sensor descriptors: camera and IMU ``local_transform`` map each sensor
  frame into the rig's base frame;
- estimator: camera extrinsics relative to the IMU sensor frame (T_SC) and
  poses of the tracked body frame in the estimator world frame;
- odometry output: poses in the reporting frame, emitted as increments
  relative to the previously reported pose.

Everything here is stateless.
"""

from __future__ import annotations

from typing import Mapping

import numpy as np

from ..sensors.camera_model import CameraModel, StereoCameraModel
from ..sensors.pose import SE3

# Position axes: estimator world -> reporting frame
FIX_POSITION = SE3(
    rotation=np.array([[-1, 0, 0], [0, -1, 0], [0, 0, 1]], dtype=np.float64),
    translation=np.zeros(3),
)

# Rotation axes: reporting body -> estimator tracked body
FIX_ROTATION = SE3(
    rotation=np.array([[0, 0, 1], [0, -1, 0], [1, 0, 0]], dtype=np.float64),
    translation=np.zeros(3),
)


def camera_to_body(imu_local_transform: SE3, camera_local_transform: SE3) -> SE3:
    """Express a camera extrinsic relative to the IMU sensor frame.

    Returns:
        imu_local_transform⁻¹ @ camera_local_transform
    """
    return imu_local_transform.inverse() @ camera_local_transform


def body_relative_model(imu_local_transform: SE3, model: CameraModel) -> CameraModel:
    """Return a copy of ``model`` whose extrinsic is IMU-relative."""
    return model.with_local_transform(
        camera_to_body(imu_local_transform, model.local_transform)
    )


def right_camera_extrinsic(
    left_extrinsic: SE3,
    stereo_model: StereoCameraModel,
    images_already_rectified: bool,
) -> SE3:
    """Derive the right camera extrinsic from the left one.

    Raw images use the calibrated stereo transform [R|T] (left camera frame
    to right camera frame). Rectified images only keep the baseline along
    the image x axis. The offset is composed in the left camera frame,
    not applied as a body-frame offset along y.

    Args:
        left_extrinsic: Left camera to IMU/body frame
        stereo_model: Stereo calibration
        images_already_rectified: True if the pair is rectified

    Returns:
        Right camera to IMU/body frame
    """
    if not images_already_rectified:
        return left_extrinsic @ stereo_model.stereo_transform().inverse()
    return left_extrinsic @ SE3.from_translation(stereo_model.baseline, 0.0, 0.0)


def to_reporting_frame(estimator_pose: SE3) -> SE3:
    """Convert an estimator pose to the reporting convention.

    Returns:
        FIX_POSITION @ estimator_pose @ FIX_ROTATION
    """
    return FIX_POSITION @ estimator_pose @ FIX_ROTATION


def make_incremental(previous_reported: SE3, corrected_pose: SE3) -> SE3:
    """Return the transform from the previous reported pose to the current one."""
    return previous_reported.inverse() @ corrected_pose


def landmarks_to_reporting_frame(
    landmarks: Mapping[int, np.ndarray],
) -> dict[int, np.ndarray]:
    """Apply the position axis fix to a landmark set."""
    if not landmarks:
        return {}
    ids = list(landmarks.keys())
    points = np.array([landmarks[i] for i in ids], dtype=np.float64).reshape(-1, 3)
    fixed = FIX_POSITION.transform_points(points)
    return {landmark_id: fixed[k] for k, landmark_id in enumerate(ids)}
