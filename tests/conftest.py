"""Shared fixtures: calibration descriptors, IMU samples and a fake estimator."""

from pathlib import Path

import numpy as np
import pytest

from vio_fusion.estimator.interface import Estimator, MapPoint
from vio_fusion.estimator.parameters import EstimatorParameters
from vio_fusion.sensors import SE3, CameraModel, ImuSample, SensorData


class FakeEstimator(Estimator):
    """Estimator double recording every call.

    Each accepted camera-0 image publishes ``pose`` (when set) and
    ``landmarks`` synchronously through the installed callbacks.
    """

    def __init__(
        self,
        parameters: EstimatorParameters,
        pose: SE3 | None = None,
        landmarks: list[MapPoint] | None = None,
        accept_images: bool = True,
        accept_imu: bool = True,
    ) -> None:
        self.parameters = parameters
        self.pose = pose
        self.landmarks = landmarks
        self.accept_images = accept_images
        self.accept_imu = accept_imu
        self.images: list[tuple[float, int, np.ndarray]] = []
        self.imu: list[tuple[float, np.ndarray, np.ndarray]] = []
        self.blocking: bool | None = None
        self.shut_down = False
        self._state_callback = None
        self._landmarks_callback = None

    def add_imu_measurement(self, stamp, linear_acceleration, angular_velocity) -> bool:
        self.imu.append((stamp, linear_acceleration, angular_velocity))
        return self.accept_imu

    def add_image(self, stamp, camera_index, image) -> bool:
        self.images.append((stamp, camera_index, image))
        if camera_index == 0:
            if self.pose is not None and self._state_callback is not None:
                self._state_callback(stamp, self.pose, np.zeros(9), np.zeros(3))
            if self.landmarks is not None and self._landmarks_callback is not None:
                self._landmarks_callback(stamp, self.landmarks, [])
        return self.accept_images

    def set_full_state_callback(self, callback) -> None:
        self._state_callback = callback

    def set_landmarks_callback(self, callback) -> None:
        self._landmarks_callback = callback

    def set_blocking(self, blocking: bool) -> None:
        self.blocking = blocking

    def shutdown(self) -> None:
        self.shut_down = True


class FakeEstimatorFactory:
    """Callable factory keeping every estimator it creates."""

    def __init__(self, **kwargs) -> None:
        self.kwargs = kwargs
        self.created: list[FakeEstimator] = []

    def __call__(self, parameters: EstimatorParameters) -> FakeEstimator:
        estimator = FakeEstimator(parameters, **self.kwargs)
        self.created.append(estimator)
        return estimator

    @property
    def last(self) -> FakeEstimator:
        return self.created[-1]


@pytest.fixture
def estimator_config(tmp_path: Path) -> Path:
    """Write a minimal estimator YAML configuration.

    Returns:
        Path to the configuration file
    """
    path = tmp_path / "estimator.yaml"
    path.write_text(
        "imu_parameters:\n"
        "  imu_rate: 200\n"
        "  g: 9.81\n"
        "publishing_options:\n"
        "  publish_rate: 20\n"
        "  landmarkQualityThreshold: 1.0e-5\n"
        "  trackedBodyFrame: S\n"
        "  velocitiesFrame: Wc\n"
        "estimator_parameters:\n"
        "  max_queue_size: 500\n"
    )
    return path


@pytest.fixture
def camera_model() -> CameraModel:
    """64x48 rectified camera 5 cm in front of the rig origin."""
    return CameraModel.from_intrinsics(
        name="cam0",
        image_size=(64, 48),
        fx=50.0,
        fy=50.0,
        cx=32.0,
        cy=24.0,
        local_transform=SE3.from_translation(0.0, 0.0, 0.05),
    )


@pytest.fixture
def imu_sample() -> ImuSample:
    """Static IMU sample measuring gravity, mounted 10 cm along x."""
    return ImuSample.from_readings(
        angular_velocity=np.zeros(3),
        linear_acceleration=np.array([0.0, 0.0, 9.81]),
        local_transform=SE3.from_translation(0.1, 0.0, 0.0),
    )


@pytest.fixture
def make_image_sample(camera_model: CameraModel):
    """Build image-only samples with a random texture."""
    rng = np.random.default_rng(0)

    def _make(stamp: float, models: list[CameraModel] | None = None, width: int = 64) -> SensorData:
        image = rng.integers(0, 256, size=(48, width), dtype=np.uint8)
        return SensorData(
            stamp=stamp,
            image=image,
            camera_models=models if models is not None else [camera_model],
        )

    return _make


@pytest.fixture
def fake_factory():
    """Return the FakeEstimatorFactory class for configuring fakes per test."""
    return FakeEstimatorFactory
