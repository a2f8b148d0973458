"""Build estimator camera geometries from runtime calibration descriptors.

The distortion family is chosen from the number of raw distortion
coefficients, checked in a fixed priority order:

1. 8 coefficients  -> rational radial-tangential (RadialTangential8)
2. 6 coefficients  -> equidistant fisheye (coefficients 0, 1, 4, 5)
3. 4 or more       -> radial-tangential on the first four coefficients
4. rectified input -> zero-coefficient radial-tangential on rectified K

Rules 1 to 3 only apply to raw (not rectified) images. A raw camera that
matches none of them is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, NamedTuple, Sequence

from ..sensors.camera_model import CameraModel
from ..sensors.pose import SE3
from .camera_system import CameraSystem
from .distortion import (
    DistortionType,
    EquidistantDistortion,
    RadialTangential8Distortion,
    RadialTangentialDistortion,
)
from .pinhole import PinholeCamera

logger = logging.getLogger(__name__)


@dataclass
class CameraGeometry:
    """Projection object plus the tag it is registered under."""

    camera: PinholeCamera
    distortion_type: DistortionType


def _raw_pinhole(model: CameraModel, distortion) -> PinholeCamera:
    K = model.K_raw
    return PinholeCamera(
        model.image_width,
        model.image_height,
        K[0, 0],
        K[1, 1],
        K[0, 2],
        K[1, 2],
        distortion,
    )


def _radial_tangential8(model: CameraModel) -> CameraGeometry:
    D = model.D_raw
    dist = RadialTangential8Distortion(*(float(d) for d in D[:8]))
    return CameraGeometry(_raw_pinhole(model, dist), DistortionType.RADIAL_TANGENTIAL8)


def _equidistant(model: CameraModel) -> CameraGeometry:
    D = model.D_raw
    # Fisheye calibrations are stored as (k1, k2, p1, p2, k3, k4)
    dist = EquidistantDistortion(float(D[0]), float(D[1]), float(D[4]), float(D[5]))
    return CameraGeometry(_raw_pinhole(model, dist), DistortionType.EQUIDISTANT)


def _radial_tangential(model: CameraModel) -> CameraGeometry:
    D = model.D_raw
    dist = RadialTangentialDistortion(float(D[0]), float(D[1]), float(D[2]), float(D[3]))
    return CameraGeometry(_raw_pinhole(model, dist), DistortionType.RADIAL_TANGENTIAL)


def _rectified(model: CameraModel) -> CameraGeometry:
    camera = PinholeCamera(
        model.image_width,
        model.image_height,
        model.fx,
        model.fy,
        model.cx,
        model.cy,
        RadialTangentialDistortion(0.0, 0.0, 0.0, 0.0),
    )
    return CameraGeometry(camera, DistortionType.RADIAL_TANGENTIAL)


class _SelectionRule(NamedTuple):
    name: str
    matches: Callable[[CameraModel, bool], bool]
    build: Callable[[CameraModel], CameraGeometry]


# Order matters: the first matching rule wins.
SELECTION_RULES: tuple[_SelectionRule, ...] = (
    _SelectionRule(
        "RadialTangential8",
        lambda model, rectified: not rectified and len(model.D_raw) == 8,
        _radial_tangential8,
    ),
    _SelectionRule(
        "Equidistant",
        lambda model, rectified: not rectified and len(model.D_raw) == 6,
        _equidistant,
    ),
    _SelectionRule(
        "RadialTangential",
        lambda model, rectified: not rectified and len(model.D_raw) >= 4,
        _radial_tangential,
    ),
    _SelectionRule(
        "Rectified",
        lambda model, rectified: rectified,
        _rectified,
    ),
)


def build_camera(
    model: CameraModel, images_already_rectified: bool
) -> CameraGeometry | None:
    """Create the camera geometry for one calibration descriptor.

    Args:
        model: Camera calibration descriptor
        images_already_rectified: True if incoming images are undistorted

    Returns:
        CameraGeometry, or None if no distortion family applies
    """
    for rule in SELECTION_RULES:
        if rule.matches(model, images_already_rectified):
            logger.info("Camera %s: %s", model.name, rule.name)
            return rule.build(model)
    return None


def extrinsic_from_model(model: CameraModel) -> SE3:
    """Return the camera extrinsic rebuilt from a normalized quaternion."""
    local = model.local_transform
    qw, qx, qy, qz = local.to_quaternion()
    return SE3.from_quaternion(qw, qx, qy, qz, translation=local.translation)


def register_cameras(
    models: Sequence[CameraModel],
    images_already_rectified: bool,
    camera_system: CameraSystem,
) -> list[int]:
    """Build and register every camera that has a usable distortion family.

    Models must already carry body-relative extrinsics. Registered cameras get
    dense indices in ``camera_system`` in the order they appear in ``models``.

    Returns:
        Positions in ``models`` of the cameras added to ``camera_system``
    """
    registered: list[int] = []
    for i, model in enumerate(models):
        geometry = build_camera(model, images_already_rectified)
        if geometry is None:
            logger.debug(
                "Camera %d (%s) dropped: no distortion model for %d coefficients",
                i,
                model.name,
                len(model.D_raw),
            )
            continue

        logger.info("model %d: %s", i, model.local_transform.pretty())
        camera_system.add_camera(
            extrinsic_from_model(model), geometry.camera, geometry.distortion_type
        )
        registered.append(i)
    return registered
