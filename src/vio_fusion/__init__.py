"""Python VIO Fusion - visual-inertial odometry driver in Python."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .config import FusionConfig
from .dataset_reader import EurocReader
from .errors import ConfigurationError, FusionError, UnsupportedFormatError
from .sensors import SE3, CameraModel, ImuSample, SensorData, StereoCameraModel
from .cameras import CameraSystem, DistortionType, PinholeCamera
from .estimator import DeadReckoningEstimator, Estimator, EstimatorParameters
from .fusion import DriverState, FusionDriver, FusionResult, FusionStatus, StateHandoff

__all__ = [
    "__version__",
    # Configuration / errors
    "FusionConfig",
    "FusionError",
    "ConfigurationError",
    "UnsupportedFormatError",
    # Dataset
    "EurocReader",
    # Sensors
    "SE3",
    "ImuSample",
    "CameraModel",
    "StereoCameraModel",
    "SensorData",
    # Cameras
    "CameraSystem",
    "PinholeCamera",
    "DistortionType",
    # Estimator
    "Estimator",
    "EstimatorParameters",
    "DeadReckoningEstimator",
    # Fusion
    "FusionDriver",
    "FusionResult",
    "FusionStatus",
    "DriverState",
    "StateHandoff",
]
