"""Sensor descriptors and measurement types.

- SE3: Rigid body transformation used for extrinsics and poses
- ImuSample: Gyroscope/accelerometer measurement with covariances
- CameraModel / StereoCameraModel: Per-camera calibration descriptors
- SensorData: Combined image + IMU sample fed to the fusion driver
"""

from .pose import SE3
from .imu import ImuSample
from .camera_model import CameraModel, StereoCameraModel, load_euroc_camera
from .sensor_data import SensorData

__all__ = [
    "SE3",
    "ImuSample",
    "CameraModel",
    "StereoCameraModel",
    "load_euroc_camera",
    "SensorData",
]
