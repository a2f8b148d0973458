"""Per-camera calibration descriptors handed to the fusion driver."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

import numpy as np
import yaml

from .pose import SE3


@dataclass(eq=False)
class CameraModel:
    """Pinhole camera calibration with optional raw (distorted) parameters.

    Attributes:
        name: Camera identifier (e.g. "cam0")
        image_size: (width, height) in pixels
        K_raw: 3x3 intrinsic matrix of the raw (distorted) image
        D_raw: Distortion coefficients of the raw image (0, 4, 5, 6 or 8 values)
        K: 3x3 intrinsic matrix of the rectified image (defaults to K_raw)
        local_transform: Camera optical frame to sensor/body frame
    """

    name: str
    image_size: tuple[int, int]
    K_raw: np.ndarray
    D_raw: np.ndarray = field(default_factory=lambda: np.zeros(0))
    K: np.ndarray | None = None
    local_transform: SE3 = field(default_factory=SE3.identity)

    def __post_init__(self) -> None:
        self.K_raw = np.asarray(self.K_raw, dtype=np.float64)
        if self.K_raw.shape != (3, 3):
            raise ValueError(f"K_raw must be 3x3, got {self.K_raw.shape}")
        self.D_raw = np.asarray(self.D_raw, dtype=np.float64).flatten()
        self.K = self.K_raw.copy() if self.K is None else np.asarray(self.K, dtype=np.float64)
        if self.K.shape != (3, 3):
            raise ValueError(f"K must be 3x3, got {self.K.shape}")
        self.image_size = (int(self.image_size[0]), int(self.image_size[1]))

    @classmethod
    def from_intrinsics(
        cls,
        name: str,
        image_size: tuple[int, int],
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        distortion: np.ndarray | list[float] | None = None,
        local_transform: SE3 | None = None,
    ) -> CameraModel:
        """Build a model from focal lengths and principal point."""
        K = np.array([[fx, 0.0, cx], [0.0, fy, cy], [0.0, 0.0, 1.0]], dtype=np.float64)
        return cls(
            name=name,
            image_size=image_size,
            K_raw=K,
            D_raw=np.zeros(0) if distortion is None else np.asarray(distortion),
            local_transform=local_transform if local_transform is not None else SE3.identity(),
        )

    @property
    def image_width(self) -> int:
        return self.image_size[0]

    @property
    def image_height(self) -> int:
        return self.image_size[1]

    @property
    def fx(self) -> float:
        return float(self.K[0, 0])

    @property
    def fy(self) -> float:
        return float(self.K[1, 1])

    @property
    def cx(self) -> float:
        return float(self.K[0, 2])

    @property
    def cy(self) -> float:
        return float(self.K[1, 2])

    def is_valid_for_projection(self) -> bool:
        """Return True if rectified intrinsics and extrinsic are usable."""
        return (
            self.fx > 0.0
            and self.fy > 0.0
            and self.cx > 0.0
            and self.cy > 0.0
            and not self.local_transform.is_null()
        )

    def with_local_transform(self, local_transform: SE3) -> CameraModel:
        """Return a copy of this model with another extrinsic."""
        return replace(
            self,
            K_raw=self.K_raw.copy(),
            D_raw=self.D_raw.copy(),
            K=self.K.copy(),
            local_transform=local_transform,
        )


def load_euroc_camera(yaml_path: str | Path) -> CameraModel:
    """Parse an EuRoC camera ``sensor.yaml`` file.

    Args:
        yaml_path: Path to sensor.yaml file

    Returns:
        CameraModel with raw intrinsics, distortion and camera-to-body extrinsic

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format is invalid
    """
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Calibration file not found: {yaml_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    # [fu, fv, cu, cv]
    intrinsics = data.get("intrinsics")
    if intrinsics is None or len(intrinsics) != 4:
        raise ValueError(f"Invalid intrinsics in {yaml_path}")

    distortion = data.get("distortion_coefficients")
    if distortion is None or len(distortion) not in (4, 5, 6, 8):
        raise ValueError(f"Invalid distortion coefficients in {yaml_path}")

    T_BS_data = (data.get("T_BS") or {}).get("data")
    if T_BS_data is None or len(T_BS_data) != 16:
        raise ValueError(f"Invalid T_BS transform in {yaml_path}")

    resolution = data.get("resolution")
    if resolution is None or len(resolution) != 2:
        raise ValueError(f"Invalid resolution in {yaml_path}")

    return CameraModel.from_intrinsics(
        name=path.parent.name,
        image_size=(resolution[0], resolution[1]),
        fx=intrinsics[0],
        fy=intrinsics[1],
        cx=intrinsics[2],
        cy=intrinsics[3],
        distortion=distortion,
        local_transform=SE3.from_matrix(np.array(T_BS_data, dtype=np.float64).reshape(4, 4)),
    )


@dataclass(eq=False)
class StereoCameraModel:
    """Calibrated stereo pair.

    ``R`` and ``T`` map points from the left camera frame to the right one:

        p_right = R @ p_left + T

    Attributes:
        left: Left camera model
        right: Right camera model
        R: 3x3 stereo rotation (None when only the rectified baseline is known)
        T: 3x1 stereo translation
        baseline: Distance between the optical centers in meters
    """

    left: CameraModel
    right: CameraModel
    R: np.ndarray | None = None
    T: np.ndarray | None = None
    baseline: float = 0.0

    def __post_init__(self) -> None:
        if self.R is not None:
            self.R = np.asarray(self.R, dtype=np.float64)
            if self.R.shape != (3, 3):
                raise ValueError(f"Stereo R must be 3x3, got {self.R.shape}")
        if self.T is not None:
            self.T = np.asarray(self.T, dtype=np.float64).reshape(3, 1)
            if self.baseline <= 0.0:
                self.baseline = float(np.linalg.norm(self.T))
        self.baseline = float(self.baseline)

    @classmethod
    def from_euroc_yaml(
        cls, cam0_yaml_path: str | Path, cam1_yaml_path: str | Path
    ) -> StereoCameraModel:
        """Load a stereo pair from two EuRoC ``sensor.yaml`` files.

        The relative pose T_cam1_cam0 = inv(T_BS_cam1) @ T_BS_cam0 gives the
        stereo R and T.
        """
        left = load_euroc_camera(cam0_yaml_path)
        right = load_euroc_camera(cam1_yaml_path)

        T_cam1_cam0 = right.local_transform.inverse() @ left.local_transform
        return cls(
            left=left,
            right=right,
            R=T_cam1_cam0.rotation,
            T=T_cam1_cam0.translation,
        )

    def stereo_transform(self) -> SE3:
        """Return [R|T] as an SE3 (left camera frame to right camera frame)."""
        if self.R is None or self.T is None:
            raise ValueError("Stereo model has no R/T extrinsics")
        return SE3(rotation=self.R, translation=self.T)

    def is_valid_for_projection(self) -> bool:
        """Return True when both cameras are usable and the baseline is positive."""
        return (
            self.left.is_valid_for_projection()
            and self.right.is_valid_for_projection()
            and self.baseline > 0.0
        )
