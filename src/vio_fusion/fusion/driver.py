"""Fusion driver: feeds sensor samples to the estimator and reports odometry.

The driver lazily builds the estimator on the first image that arrives
after an IMU sample (the IMU extrinsic is needed to express camera
extrinsics relative to the IMU). From then on every image and IMU sample is
forwarded, and once enough images have been ingested the latest estimator
pose is returned as an increment over the previously reported pose.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import cv2
import numpy as np

from ..cameras.camera_system import CameraSystem
from ..cameras.factory import register_cameras
from ..config import FusionConfig
from ..errors import ConfigurationError, UnsupportedFormatError
from ..estimator.dead_reckoning import DeadReckoningEstimator
from ..estimator.interface import Estimator
from ..estimator.parameters import EstimatorParameters, FrameName, load_estimator_parameters
from ..sensors.camera_model import CameraModel
from ..sensors.imu import ImuSample
from ..sensors.pose import SE3
from ..sensors.sensor_data import SensorData
from .conventions import (
    body_relative_model,
    landmarks_to_reporting_frame,
    make_incremental,
    right_camera_extrinsic,
    to_reporting_frame,
)
from .state_handoff import StateHandoff

logger = logging.getLogger(__name__)

EstimatorFactory = Callable[[EstimatorParameters], Estimator]


class DriverState(Enum):
    """Lifecycle of a fusion session."""

    UNINITIALIZED = "UNINITIALIZED"  # Nothing received yet
    AWAITING_FIRST_IMU = "AWAITING_FIRST_IMU"  # Images received, no IMU cached
    AWAITING_FIRST_IMAGE = "AWAITING_FIRST_IMAGE"  # IMU cached, no estimator
    RUNNING = "RUNNING"  # Estimator constructed and ingesting


class FusionStatus(Enum):
    """Outcome of one :meth:`FusionDriver.process` call."""

    OK = "OK"
    WAITING_FOR_IMU = "WAITING_FOR_IMU"
    WAITING_FOR_IMAGE = "WAITING_FOR_IMAGE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    WARMING_UP = "WARMING_UP"
    NO_MEASUREMENT = "NO_MEASUREMENT"  # Nothing accepted by the estimator
    NO_POSE = "NO_POSE"  # Estimator has not published a pose yet


@dataclass
class FusionResult:
    """Output of the fusion driver for one sensor sample.

    Attributes:
        transform: Increment from the previously reported pose, or the null
            sentinel when no pose was produced
        status: Why a pose was or was not produced
        covariance: 6x6 diagonal covariance of ``transform`` (None if not computed)
        landmarks: Landmarks in the reporting frame (None unless requested)
        image_deferred: True if the estimator deferred an image submission
        timing_ms: Processing time of the call
    """

    transform: SE3 = field(default_factory=SE3.null)
    status: FusionStatus = FusionStatus.NO_MEASUREMENT
    covariance: np.ndarray | None = None
    landmarks: dict[int, np.ndarray] | None = None
    image_deferred: bool = False
    timing_ms: float = 0.0

    @property
    def is_null(self) -> bool:
        """Return True when no pose was produced."""
        return self.transform.is_null()


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an 8-bit BGR or grayscale image to single-channel 8-bit.

    Raises:
        UnsupportedFormatError: For any other pixel layout
    """
    if image.dtype == np.uint8:
        if image.ndim == 3 and image.shape[2] == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        if image.ndim == 2:
            return image
        if image.ndim == 3 and image.shape[2] == 1:
            return image[:, :, 0]

    logger.critical("Not supported color type! dtype=%s shape=%s", image.dtype, image.shape)
    raise UnsupportedFormatError(
        f"Unsupported image format: dtype={image.dtype}, shape={image.shape}"
    )


class FusionDriver:
    """Stateful orchestrator between sensor samples and the estimator.

    :meth:`process` must be called from one thread at a time, and
    :meth:`reset` must not run concurrently with it. Only the
    :class:`StateHandoff` is shared with the estimator's thread.
    """

    def __init__(
        self,
        config: FusionConfig | None = None,
        estimator_factory: EstimatorFactory = DeadReckoningEstimator,
    ) -> None:
        """Initialize the driver.

        Args:
            config: Driver configuration (estimator config path, warm-up, ...)
            estimator_factory: Builds the estimator from its parameters
        """
        self._config = config if config is not None else FusionConfig()
        self._estimator_factory = estimator_factory

        if not self._config.config_path:
            logger.error("Estimator config path is empty (FusionConfig.config_path)")

        # Session state
        self._handoff = StateHandoff()
        self._estimator: Estimator | None = None
        self._last_imu = ImuSample.empty()
        self._image_received = False
        # Positions in the split images of the cameras the estimator registered
        self._active_cameras: list[int] = []
        self._images_processed = 0
        self._frames_processed = 0
        self._pose = SE3.identity()

    def process(self, data: SensorData, compute_info: bool = True) -> FusionResult:
        """Ingest one sensor sample and return the odometry increment.

        Args:
            data: Image and/or IMU sample
            compute_info: If True, fill covariance (and landmarks if configured)

        Returns:
            FusionResult whose transform is null when no pose was produced

        Raises:
            UnsupportedFormatError: If an image cannot be converted to grayscale
            ValueError: If the image width does not split evenly across cameras
        """
        start_time = time.perf_counter()
        result = FusionResult()

        imu_updated = False
        if data.has_imu:
            imu = data.imu
            logger.debug(
                "IMU update stamp=%f acc=%s gyr=%s",
                data.stamp,
                imu.linear_acceleration,
                imu.angular_velocity,
            )
            if self._estimator is not None:
                imu_updated = self._estimator.add_imu_measurement(
                    data.stamp, imu.linear_acceleration, imu.angular_velocity
                )
            else:
                logger.warning("Ignoring IMU, waiting for an image to initialize...")
                self._last_imu = imu

        image_updated = False
        if data.has_image:
            logger.debug("Image update stamp=%f", data.stamp)
            self._image_received = True
            images, models = self._split_images(data)

            if images:
                if self._estimator is None:
                    failure = self._initialize(models)
                    if failure is not None:
                        result.status = failure
                        result.timing_ms = (time.perf_counter() - start_time) * 1000
                        return result

                for camera_index, image_index in enumerate(self._active_cameras):
                    if image_index >= len(images):
                        logger.warning(
                            "Image at %f has no slice for camera %d", data.stamp, camera_index
                        )
                        continue
                    gray = to_grayscale(images[image_index])
                    image_updated = self._estimator.add_image(data.stamp, camera_index, gray)
                    if not image_updated:
                        logger.warning("Image update with stamp %f delayed...", data.stamp)
                        result.image_deferred = True
                if image_updated:
                    self._images_processed += 1

        if self._estimator is None:
            result.status = (
                FusionStatus.WAITING_FOR_IMU
                if self._last_imu.is_empty()
                else FusionStatus.WAITING_FOR_IMAGE
            )
        elif not (image_updated or imu_updated):
            result.status = FusionStatus.NO_MEASUREMENT
        elif self._images_processed <= self._config.warmup_frames:
            result.status = FusionStatus.WARMING_UP
        else:
            self._emit(result, compute_info, start_time)

        result.timing_ms = (time.perf_counter() - start_time) * 1000
        return result

    def _emit(self, result: FusionResult, compute_info: bool, start_time: float) -> None:
        """Fill ``result`` with the increment to the latest estimator pose."""
        p = self._handoff.last_transform()
        if p.is_null():
            result.status = FusionStatus.NO_POSE
            return

        corrected = to_reporting_frame(p)
        t = make_incremental(self._pose, corrected)

        if compute_info:
            scale = (
                self._config.first_frame_covariance
                if self._frames_processed == 0
                else self._config.covariance
            )
            result.covariance = np.eye(6, dtype=np.float64) * scale
            if self._config.report_landmarks:
                result.landmarks = landmarks_to_reporting_frame(
                    self._handoff.last_landmarks()
                )

        self._pose = self._pose @ t
        self._frames_processed += 1
        result.transform = t
        result.status = FusionStatus.OK
        logger.info(
            "Odom update time = %fs p=%s", time.perf_counter() - start_time, corrected.pretty()
        )

    def _split_images(self, data: SensorData) -> tuple[list[np.ndarray], list[CameraModel]]:
        """Split the sample into per-camera images and IMU-relative models."""
        imu_transform = self._last_imu.local_transform
        stereo = data.stereo_model

        if stereo is not None and stereo.is_valid_for_projection():
            if data.right_image is None or data.right_image.size == 0:
                raise ValueError("Stereo sample requires a right image")
            left = body_relative_model(imu_transform, stereo.left)
            right = stereo.right.with_local_transform(
                right_camera_extrinsic(
                    left.local_transform, stereo, self._config.images_already_rectified
                )
            )
            return [data.image, data.right_image], [left, right]

        n_models = len(data.camera_models)
        if n_models == 0:
            logger.debug("Image at %f has no calibration, ignored", data.stamp)
            return [], []

        width = data.image.shape[1]
        if width % n_models != 0:
            raise ValueError(
                f"Image width {width} is not divisible by the number of cameras ({n_models})"
            )
        sub_width = width // n_models

        images: list[np.ndarray] = []
        models: list[CameraModel] = []
        for i, model in enumerate(data.camera_models):
            if model.is_valid_for_projection():
                images.append(
                    np.ascontiguousarray(data.image[:, sub_width * i : sub_width * (i + 1)])
                )
                models.append(body_relative_model(imu_transform, model))
        return images, models

    def _initialize(self, models: list[CameraModel]) -> FusionStatus | None:
        """Build the estimator from configuration and live calibration.

        Returns:
            None on success, otherwise the status explaining the failure
        """
        logger.debug("Initialization")
        if self._last_imu.is_empty():
            logger.warning("Ignoring Image, waiting for imu to initialize...")
            return FusionStatus.WAITING_FOR_IMU

        try:
            parameters = load_estimator_parameters(self._config.config_path)
        except ConfigurationError as e:
            logger.error("Cannot initialize estimator: %s", e)
            return FusionStatus.CONFIGURATION_ERROR

        if parameters.camera_system.num_cameras > 0:
            logger.warning(
                "Camera calibration included in the estimator config is ignored as "
                "calibration from received images will be used instead."
            )
        parameters.camera_system = CameraSystem()

        publishing = parameters.publishing
        publishing.publish_rate = parameters.imu.rate
        publishing.publish_landmarks = True
        publishing.publish_imu_propagated_state = True
        publishing.landmark_quality_threshold = 1.0e-2
        publishing.max_landmark_quality = 0.05
        publishing.tracked_body_frame = FrameName.B
        publishing.velocities_frame = FrameName.B

        parameters.imu.T_BS = self._last_imu.local_transform.copy()
        self._active_cameras = register_cameras(
            models, self._config.images_already_rectified, parameters.camera_system
        )
        if len(self._active_cameras) < len(models):
            logger.warning(
                "%d of %d cameras registered", len(self._active_cameras), len(models)
            )

        estimator = self._estimator_factory(parameters)
        estimator.set_full_state_callback(self._handoff.full_state_callback)
        estimator.set_landmarks_callback(self._handoff.landmarks_callback)
        estimator.set_blocking(True)
        self._estimator = estimator
        return None

    def reset(self, initial_pose: SE3 | None = None) -> None:
        """Discard the estimator and restart the session.

        Args:
            initial_pose: Pose the next increments are relative to (default: identity)
        """
        if self._estimator is not None:
            self._estimator.shutdown()
            self._estimator = None
        self._last_imu = ImuSample.empty()
        self._handoff = StateHandoff()
        self._image_received = False
        self._active_cameras = []
        self._images_processed = 0
        self._frames_processed = 0
        self._pose = initial_pose.copy() if initial_pose is not None else SE3.identity()

    def close(self) -> None:
        """Shut the estimator down."""
        if self._estimator is not None:
            self._estimator.shutdown()
            self._estimator = None

    @property
    def state(self) -> DriverState:
        """Return the current lifecycle state."""
        if self._estimator is not None:
            return DriverState.RUNNING
        if not self._last_imu.is_empty():
            return DriverState.AWAITING_FIRST_IMAGE
        if self._image_received:
            return DriverState.AWAITING_FIRST_IMU
        return DriverState.UNINITIALIZED

    @property
    def is_initialized(self) -> bool:
        """Return True once the estimator has been constructed."""
        return self._estimator is not None

    @property
    def estimator(self) -> Estimator | None:
        return self._estimator

    @property
    def handoff(self) -> StateHandoff:
        return self._handoff

    @property
    def last_imu(self) -> ImuSample:
        """Return the IMU sample cached for initialization."""
        return self._last_imu

    @property
    def images_processed(self) -> int:
        """Return number of images ingested in this session."""
        return self._images_processed

    @property
    def frames_processed(self) -> int:
        """Return number of poses reported in this session."""
        return self._frames_processed

    @property
    def pose(self) -> SE3:
        """Return the accumulated reported pose."""
        return self._pose.copy()

    @property
    def config(self) -> FusionConfig:
        return self._config

    def __enter__(self) -> FusionDriver:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
