"""Estimator contract, configuration and reference implementation."""

from .dead_reckoning import DeadReckoningEstimator
from .imu_integrator import ImuIntegrator, ImuState
from .interface import Estimator, FullStateCallback, LandmarksCallback, MapPoint
from .parameters import (
    EngineParameters,
    EstimatorParameters,
    FrameName,
    ImuParameters,
    PublishingParameters,
    load_estimator_parameters,
)

__all__ = [
    # Contract
    "Estimator",
    "MapPoint",
    "FullStateCallback",
    "LandmarksCallback",
    # Configuration
    "EstimatorParameters",
    "ImuParameters",
    "PublishingParameters",
    "EngineParameters",
    "FrameName",
    "load_estimator_parameters",
    # Reference estimator
    "DeadReckoningEstimator",
    "ImuIntegrator",
    "ImuState",
]
