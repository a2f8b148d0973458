"""Multi-camera rig as registered with the estimator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from ..sensors.pose import SE3
from .distortion import DistortionType
from .pinhole import PinholeCamera


@dataclass
class RegisteredCamera:
    """One camera of the rig.

    Attributes:
        T_SC: Camera frame to IMU/body frame
        camera: Projection geometry
        distortion_type: Distortion family tag
    """

    T_SC: SE3
    camera: PinholeCamera
    distortion_type: DistortionType


class CameraSystem:
    """Ordered set of cameras with body-relative extrinsics.

    Camera indices used for image ingestion are positions in this list.
    """

    def __init__(self) -> None:
        self._cameras: list[RegisteredCamera] = []

    def add_camera(
        self,
        T_SC: SE3,
        camera: PinholeCamera,
        distortion_type: DistortionType,
    ) -> int:
        """Register a camera and return its index."""
        self._cameras.append(
            RegisteredCamera(T_SC=T_SC.copy(), camera=camera, distortion_type=distortion_type)
        )
        return len(self._cameras) - 1

    def T_SC(self, index: int) -> SE3:
        """Return the extrinsic of camera ``index``."""
        return self._cameras[index].T_SC.copy()

    def camera(self, index: int) -> PinholeCamera:
        return self._cameras[index].camera

    def distortion_type(self, index: int) -> DistortionType:
        return self._cameras[index].distortion_type

    @property
    def num_cameras(self) -> int:
        """Return number of registered cameras."""
        return len(self._cameras)

    def __iter__(self) -> Iterator[RegisteredCamera]:
        return iter(self._cameras)

    def __len__(self) -> int:
        return len(self._cameras)
