"""Tests for the threaded reference estimator and IMU integration."""

import threading

import cv2
import numpy as np
import pytest

from vio_fusion.cameras import CameraSystem, DistortionType, PinholeCamera
from vio_fusion.estimator import (
    DeadReckoningEstimator,
    EstimatorParameters,
    FrameName,
    ImuIntegrator,
)
from vio_fusion.estimator.imu_integrator import gravity_aligned_rotation
from vio_fusion.sensors import SE3

GRAVITY = np.array([0.0, 0.0, 9.81])


class Recorder:
    """Collects callback invocations from the estimator thread."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.states: list[tuple[float, SE3]] = []
        self.landmarks: list[tuple[float, list]] = []

    def full_state(self, stamp, T_WS, speed_and_biases, omega_S) -> None:
        assert speed_and_biases.shape == (9,)
        assert omega_S.shape == (3,)
        with self.lock:
            self.states.append((stamp, T_WS))

    def on_landmarks(self, stamp, landmarks, transferred) -> None:
        with self.lock:
            self.landmarks.append((stamp, list(landmarks)))


@pytest.fixture
def parameters() -> EstimatorParameters:
    parameters = EstimatorParameters()
    parameters.camera_system = CameraSystem()
    parameters.camera_system.add_camera(
        SE3.from_translation(0.0, 0.0, 0.1),
        PinholeCamera(320, 240, 200.0, 200.0, 160.0, 120.0),
        DistortionType.NO_DISTORTION,
    )
    parameters.publishing.publish_rate = parameters.imu.rate
    parameters.engine.max_queue_size = 1000
    return parameters


def textured_image() -> np.ndarray:
    """Random 10x10 pixel blocks, giving plenty of ORB corners."""
    blocks = np.random.default_rng(0).integers(0, 256, size=(24, 32), dtype=np.uint8)
    return cv2.resize(blocks, (320, 240), interpolation=cv2.INTER_NEAREST)


def start(parameters: EstimatorParameters, recorder: Recorder) -> DeadReckoningEstimator:
    estimator = DeadReckoningEstimator(parameters)
    estimator.set_full_state_callback(recorder.full_state)
    estimator.set_landmarks_callback(recorder.on_landmarks)
    estimator.set_blocking(True)
    return estimator


class TestImuIntegrator:
    """Test suite for ImuIntegrator."""

    def test_gravity_alignment(self):
        """Test that the measured specific force maps onto world +z."""
        acc = np.array([0.0, 9.81, 0.0])

        R = gravity_aligned_rotation(acc)

        np.testing.assert_allclose(R @ (acc / 9.81), [0.0, 0.0, 1.0], atol=1e-9)

    def test_static_stays_put(self):
        """Test that a static IMU does not move."""
        integrator = ImuIntegrator(gravity_magnitude=9.81)
        state = integrator.initial_state(0.0, GRAVITY, np.zeros(3))

        for k in range(1, 201):
            state = integrator.integrate(state, k * 0.005, GRAVITY, np.zeros(3))

        np.testing.assert_allclose(state.T_WS.translation, np.zeros(3), atol=1e-9)
        np.testing.assert_allclose(state.velocity, np.zeros(3), atol=1e-9)

    def test_constant_acceleration(self):
        """Test p = a t^2 / 2 under constant acceleration along x."""
        integrator = ImuIntegrator(gravity_magnitude=9.81)
        state = integrator.initial_state(0.0, GRAVITY, np.zeros(3))
        acc = GRAVITY + np.array([1.0, 0.0, 0.0])

        for k in range(1, 201):
            state = integrator.integrate(state, k * 0.005, acc, np.zeros(3))

        np.testing.assert_allclose(state.T_WS.translation, [0.5, 0.0, 0.0], atol=1e-6)
        np.testing.assert_allclose(state.velocity, [1.0, 0.0, 0.0], atol=1e-9)

    def test_constant_rotation(self):
        """Test yaw integration at constant rate."""
        integrator = ImuIntegrator(gravity_magnitude=9.81)
        state = integrator.initial_state(0.0, GRAVITY, np.zeros(3))
        omega = np.array([0.0, 0.0, 0.5])

        for k in range(1, 201):
            state = integrator.integrate(state, k * 0.005, GRAVITY, omega)

        yaw = np.arctan2(state.T_WS.rotation[1, 0], state.T_WS.rotation[0, 0])
        assert yaw == pytest.approx(0.5, abs=1e-9)

    def test_out_of_order_sample_ignored(self):
        """Test that samples older than the state leave it unchanged."""
        integrator = ImuIntegrator()
        state = integrator.initial_state(1.0, GRAVITY, np.zeros(3))

        assert integrator.integrate(state, 0.5, GRAVITY, np.ones(3)) is state

    def test_gap_skipped(self):
        """Test that long gaps only advance the stamp."""
        integrator = ImuIntegrator()
        state = integrator.initial_state(0.0, GRAVITY, np.zeros(3))

        after = integrator.integrate(state, 5.0, GRAVITY + 10.0, np.zeros(3))

        assert after.stamp == 5.0
        np.testing.assert_allclose(after.velocity, np.zeros(3))


class TestDeadReckoningEstimator:
    """Test suite for DeadReckoningEstimator."""

    def test_publishes_on_imu(self, parameters):
        """Test that every IMU sample publishes at publish_rate == imu rate."""
        recorder = Recorder()
        estimator = start(parameters, recorder)
        try:
            for k in range(10):
                assert estimator.add_imu_measurement(k * 0.005, GRAVITY, np.zeros(3))
            assert estimator.flush(timeout=5.0)
        finally:
            estimator.shutdown()

        assert [stamp for stamp, _ in recorder.states] == pytest.approx([k * 0.005 for k in range(10)])

    def test_publish_rate_decimation(self, parameters):
        """Test that a lower publish rate publishes every n-th IMU sample."""
        parameters.publishing.publish_rate = parameters.imu.rate / 5
        recorder = Recorder()
        estimator = start(parameters, recorder)
        try:
            for k in range(20):
                estimator.add_imu_measurement(k * 0.005, GRAVITY, np.zeros(3))
            estimator.flush(timeout=5.0)
        finally:
            estimator.shutdown()

        assert len(recorder.states) == 4

    def test_tracked_body_frame(self, parameters):
        """Test that body-frame tracking applies the inverse IMU extrinsic."""
        parameters.imu.T_BS = SE3.from_translation(0.2, 0.0, 0.0)
        parameters.publishing.tracked_body_frame = FrameName.B
        recorder = Recorder()
        estimator = start(parameters, recorder)
        try:
            estimator.add_imu_measurement(0.0, GRAVITY, np.zeros(3))
            estimator.flush(timeout=5.0)
        finally:
            estimator.shutdown()

        _, T_WB = recorder.states[-1]
        np.testing.assert_allclose(T_WB.translation, [-0.2, 0.0, 0.0], atol=1e-9)

    def test_image_publishes_state_and_landmarks(self, parameters):
        """Test that a camera-0 image publishes the state and back-projected landmarks."""
        parameters.publishing.publish_imu_propagated_state = False
        recorder = Recorder()
        estimator = start(parameters, recorder)
        try:
            estimator.add_imu_measurement(0.0, GRAVITY, np.zeros(3))
            assert estimator.add_image(0.01, 0, textured_image())
            estimator.add_image(0.02, 0, textured_image())
            estimator.flush(timeout=5.0)
        finally:
            estimator.shutdown()

        assert [stamp for stamp, _ in recorder.states] == [0.01, 0.02]
        assert len(recorder.landmarks) == 2
        first, second = recorder.landmarks[0][1], recorder.landmarks[1][1]
        assert first
        # Ids keep increasing across publications
        assert min(lm.id for lm in second) > max(lm.id for lm in first)
        for lm in first:
            assert lm.quality >= parameters.publishing.landmark_quality_threshold
            assert lm.quality <= parameters.publishing.max_landmark_quality + 1e-12

    def test_image_for_unknown_camera(self, parameters):
        """Test that images for unregistered cameras are refused."""
        estimator = start(parameters, Recorder())
        try:
            assert not estimator.add_image(0.0, 3, textured_image())
        finally:
            estimator.shutdown()

    def test_non_blocking_full_queue(self, parameters):
        """Test that non-blocking ingestion reports a full queue."""
        parameters.engine.max_queue_size = 1
        gate = threading.Event()

        def slow_callback(*args):
            gate.wait(timeout=5.0)

        estimator = DeadReckoningEstimator(parameters)
        estimator.set_full_state_callback(slow_callback)
        estimator.set_blocking(False)
        try:
            # Worker takes the first sample and blocks in the callback
            assert estimator.add_imu_measurement(0.0, GRAVITY, np.zeros(3))
            accepted = [
                estimator.add_imu_measurement(k * 0.005, GRAVITY, np.zeros(3))
                for k in range(1, 10)
            ]
            assert not all(accepted)
        finally:
            gate.set()
            estimator.shutdown()

    def test_shutdown(self, parameters):
        """Test that shutdown stops the worker and refuses new measurements."""
        estimator = start(parameters, Recorder())

        estimator.shutdown()

        assert not estimator.is_running
        assert not estimator.add_imu_measurement(0.0, GRAVITY, np.zeros(3))
        assert not estimator.flush(timeout=0.1)
        estimator.shutdown()  # idempotent
