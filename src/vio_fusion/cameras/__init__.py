"""Camera geometry registered with the estimator."""

from .camera_system import CameraSystem, RegisteredCamera
from .distortion import (
    DistortionType,
    EquidistantDistortion,
    NoDistortion,
    RadialTangential8Distortion,
    RadialTangentialDistortion,
)
from .factory import CameraGeometry, build_camera, register_cameras
from .pinhole import PinholeCamera

__all__ = [
    "CameraSystem",
    "RegisteredCamera",
    "PinholeCamera",
    "CameraGeometry",
    "build_camera",
    "register_cameras",
    "DistortionType",
    "NoDistortion",
    "RadialTangentialDistortion",
    "RadialTangential8Distortion",
    "EquidistantDistortion",
]
