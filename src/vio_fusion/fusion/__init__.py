"""Fusion driver, frame conventions and estimator state handoff."""

from .conventions import (
    FIX_POSITION,
    FIX_ROTATION,
    body_relative_model,
    camera_to_body,
    landmarks_to_reporting_frame,
    make_incremental,
    right_camera_extrinsic,
    to_reporting_frame,
)
from .driver import DriverState, FusionDriver, FusionResult, FusionStatus, to_grayscale
from .state_handoff import GuardedValue, StateHandoff

__all__ = [
    # Driver
    "FusionDriver",
    "FusionResult",
    "FusionStatus",
    "DriverState",
    "to_grayscale",
    # State handoff
    "StateHandoff",
    "GuardedValue",
    # Conventions
    "FIX_POSITION",
    "FIX_ROTATION",
    "camera_to_body",
    "body_relative_model",
    "right_camera_extrinsic",
    "to_reporting_frame",
    "make_incremental",
    "landmarks_to_reporting_frame",
]
