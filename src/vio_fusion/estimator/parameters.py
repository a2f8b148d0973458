"""Estimator configuration loaded from a YAML file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from ..cameras.camera_system import CameraSystem
from ..cameras.distortion import (
    DistortionType,
    EquidistantDistortion,
    RadialTangential8Distortion,
    RadialTangentialDistortion,
)
from ..cameras.pinhole import PinholeCamera
from ..errors import ConfigurationError
from ..sensors.pose import SE3

logger = logging.getLogger(__name__)


class FrameName(Enum):
    """Frames a published state can be expressed in."""

    B = "B"  # body
    S = "S"  # IMU sensor
    Wc = "Wc"  # world, camera-aligned


@dataclass
class ImuParameters:
    """IMU noise model and extrinsic."""

    rate: float = 200.0  # Hz
    g: float = 9.81  # m/s²
    a_max: float = 176.0  # accelerometer saturation (m/s²)
    g_max: float = 7.8  # gyroscope saturation (rad/s)
    sigma_g_c: float = 12.0e-4  # gyro noise density (rad/s/√Hz)
    sigma_a_c: float = 8.0e-3  # accel noise density (m/s²/√Hz)
    sigma_gw_c: float = 4.0e-6  # gyro drift noise density
    sigma_aw_c: float = 4.0e-5  # accel drift noise density
    T_BS: SE3 = field(default_factory=SE3.identity)  # IMU sensor to body


@dataclass
class PublishingParameters:
    """What the estimator publishes and at which rate."""

    publish_rate: float = 200.0  # Hz
    publish_landmarks: bool = True
    publish_imu_propagated_state: bool = True
    landmark_quality_threshold: float = 1.0e-5
    max_landmark_quality: float = 0.05
    tracked_body_frame: FrameName = FrameName.B
    velocities_frame: FrameName = FrameName.Wc


@dataclass
class EngineParameters:
    """Settings of the reference estimator's worker."""

    max_queue_size: int = 50  # Pending measurements before ingestion blocks
    landmark_depth: float = 3.0  # Nominal depth (m) for back-projected features
    n_features: int = 200  # ORB features per published landmark set


@dataclass
class EstimatorParameters:
    """Full estimator configuration."""

    camera_system: CameraSystem = field(default_factory=CameraSystem)
    imu: ImuParameters = field(default_factory=ImuParameters)
    publishing: PublishingParameters = field(default_factory=PublishingParameters)
    engine: EngineParameters = field(default_factory=EngineParameters)


def _parse_transform(data: Any, name: str) -> SE3:
    values = data.get("data") if isinstance(data, dict) else data
    if values is None or len(values) != 16:
        raise ConfigurationError(f"{name} must hold 16 values")
    return SE3.from_matrix(np.array(values, dtype=np.float64).reshape(4, 4))


def _parse_camera(index: int, data: dict, camera_system: CameraSystem) -> None:
    """Add one embedded camera calibration to ``camera_system``."""
    try:
        T_SC = _parse_transform(data["T_SC"], f"cameras[{index}].T_SC")
        width, height = data["image_dimension"]
        fx, fy = data["focal_length"]
        cx, cy = data["principal_point"]
        coeffs = [float(c) for c in data.get("distortion_coefficients", [])]
        dist_name = data.get("distortion_type", "radialtangential")
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid camera {index} in configuration: {e}") from e

    if dist_name == "radialtangential8" and len(coeffs) == 8:
        distortion = RadialTangential8Distortion(*coeffs)
        dist_type = DistortionType.RADIAL_TANGENTIAL8
    elif dist_name == "equidistant" and len(coeffs) == 4:
        distortion = EquidistantDistortion(*coeffs)
        dist_type = DistortionType.EQUIDISTANT
    elif dist_name == "radialtangential" and len(coeffs) == 4:
        distortion = RadialTangentialDistortion(*coeffs)
        dist_type = DistortionType.RADIAL_TANGENTIAL
    else:
        raise ConfigurationError(
            f"Camera {index}: unsupported distortion {dist_name!r} with {len(coeffs)} coefficients"
        )

    camera_system.add_camera(
        T_SC, PinholeCamera(width, height, fx, fy, cx, cy, distortion), dist_type
    )


def _parse_imu(data: dict) -> ImuParameters:
    imu = ImuParameters()
    for key in ("a_max", "g_max", "sigma_g_c", "sigma_a_c", "sigma_gw_c", "sigma_aw_c", "g"):
        if key in data:
            setattr(imu, key, float(data[key]))
    if "imu_rate" in data:
        imu.rate = float(data["imu_rate"])
    if "T_BS" in data:
        imu.T_BS = _parse_transform(data["T_BS"], "imu_parameters.T_BS")
    return imu


def _parse_publishing(data: dict) -> PublishingParameters:
    publishing = PublishingParameters()
    if "publish_rate" in data:
        publishing.publish_rate = float(data["publish_rate"])
    if "publishLandmarks" in data:
        publishing.publish_landmarks = bool(data["publishLandmarks"])
    if "publishImuPropagatedState" in data:
        publishing.publish_imu_propagated_state = bool(data["publishImuPropagatedState"])
    if "landmarkQualityThreshold" in data:
        publishing.landmark_quality_threshold = float(data["landmarkQualityThreshold"])
    if "maximumLandmarkQuality" in data:
        publishing.max_landmark_quality = float(data["maximumLandmarkQuality"])
    try:
        if "trackedBodyFrame" in data:
            publishing.tracked_body_frame = FrameName(data["trackedBodyFrame"])
        if "velocitiesFrame" in data:
            publishing.velocities_frame = FrameName(data["velocitiesFrame"])
    except ValueError as e:
        raise ConfigurationError(f"Invalid publishing frame: {e}") from e
    return publishing


def _parse_engine(data: dict) -> EngineParameters:
    engine = EngineParameters()
    if "max_queue_size" in data:
        engine.max_queue_size = int(data["max_queue_size"])
    if "landmark_depth" in data:
        engine.landmark_depth = float(data["landmark_depth"])
    if "n_features" in data:
        engine.n_features = int(data["n_features"])
    return engine


def load_estimator_parameters(config_path: str | Path | None) -> EstimatorParameters:
    """Read estimator parameters from a YAML configuration file.

    Sections (all optional): ``cameras``, ``imu_parameters``,
    ``publishing_options``, ``estimator_parameters``.

    Args:
        config_path: Path to the YAML file

    Returns:
        Parsed EstimatorParameters

    Raises:
        ConfigurationError: If the path is empty, the file is missing or
            its content cannot be parsed
    """
    if config_path is None or str(config_path).strip() == "":
        raise ConfigurationError("Estimator config path is empty")

    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationError(f"Estimator config file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read estimator config {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Estimator config {path} is not a mapping")

    parameters = EstimatorParameters()
    try:
        for i, camera in enumerate(data.get("cameras") or []):
            _parse_camera(i, camera, parameters.camera_system)
        parameters.imu = _parse_imu(data.get("imu_parameters") or {})
        parameters.publishing = _parse_publishing(data.get("publishing_options") or {})
        parameters.engine = _parse_engine(data.get("estimator_parameters") or {})
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid estimator config {path}: {e}") from e

    logger.debug(
        "Loaded estimator config %s (%d embedded cameras, imu rate %.1f Hz)",
        path,
        parameters.camera_system.num_cameras,
        parameters.imu.rate,
    )
    return parameters
