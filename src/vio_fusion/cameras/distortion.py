"""Lens distortion families supported by the camera system."""

from __future__ import annotations

from dataclasses import astuple, dataclass
from enum import Enum

import numpy as np


class DistortionType(Enum):
    """Distortion tag registered alongside each camera."""

    NO_DISTORTION = "NoDistortion"
    RADIAL_TANGENTIAL = "RadialTangential"
    RADIAL_TANGENTIAL8 = "RadialTangential8"
    EQUIDISTANT = "Equidistant"


@dataclass(frozen=True)
class NoDistortion:
    """Ideal pinhole lens."""

    distortion_type = DistortionType.NO_DISTORTION
    is_fisheye = False

    def to_array(self) -> np.ndarray:
        return np.zeros(4, dtype=np.float64)


@dataclass(frozen=True)
class RadialTangentialDistortion:
    """Plumb-bob model (k1, k2, p1, p2)."""

    k1: float
    k2: float
    p1: float
    p2: float

    distortion_type = DistortionType.RADIAL_TANGENTIAL
    is_fisheye = False

    def to_array(self) -> np.ndarray:
        """Return coefficients as (4,) array for OpenCV."""
        return np.array(astuple(self), dtype=np.float64)


@dataclass(frozen=True)
class RadialTangential8Distortion:
    """Rational model (k1, k2, p1, p2, k3, k4, k5, k6).

    The coefficient order matches OpenCV, which switches to the rational
    model when given eight coefficients.
    """

    k1: float
    k2: float
    p1: float
    p2: float
    k3: float
    k4: float
    k5: float
    k6: float

    distortion_type = DistortionType.RADIAL_TANGENTIAL8
    is_fisheye = False

    def to_array(self) -> np.ndarray:
        return np.array(astuple(self), dtype=np.float64)


@dataclass(frozen=True)
class EquidistantDistortion:
    """Equidistant fisheye model (k1, k2, k3, k4), see ``cv2.fisheye``."""

    k1: float
    k2: float
    k3: float
    k4: float

    distortion_type = DistortionType.EQUIDISTANT
    is_fisheye = True

    def to_array(self) -> np.ndarray:
        return np.array(astuple(self), dtype=np.float64)


Distortion = (
    NoDistortion
    | RadialTangentialDistortion
    | RadialTangential8Distortion
    | EquidistantDistortion
)
