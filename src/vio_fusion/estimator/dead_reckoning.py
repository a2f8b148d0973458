"""Threaded reference estimator based on IMU dead reckoning.

Measurements are queued by the caller and consumed by a worker thread,
which propagates the IMU state and publishes poses and landmarks through
the installed callbacks. This mirrors the ingestion/callback contract of a
full visual-inertial back-end without performing any optimization: the
published trajectory drifts like any IMU-only estimate.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass

import cv2
import numpy as np

from ..sensors.pose import SE3
from .imu_integrator import ImuIntegrator, ImuState
from .interface import Estimator, FullStateCallback, LandmarksCallback, MapPoint
from .parameters import EstimatorParameters, FrameName

logger = logging.getLogger(__name__)


@dataclass
class _ImuMessage:
    stamp: float
    linear_acceleration: np.ndarray
    angular_velocity: np.ndarray


@dataclass
class _ImageMessage:
    stamp: float
    camera_index: int
    image: np.ndarray


@dataclass
class _FlushMessage:
    done: threading.Event


class _ShutdownMessage:
    pass


class DeadReckoningEstimator(Estimator):
    """Estimator running IMU propagation on its own thread.

    - IMU samples are integrated in arrival order. With IMU-propagated
      publishing enabled, the state is published every
      ``imu.rate / publishing.publish_rate`` samples.
    - Each camera-0 image publishes the current state. With landmark
      publishing enabled, ORB keypoints of that image are back-projected at
      the nominal depth and published as landmarks.
    """

    def __init__(self, parameters: EstimatorParameters) -> None:
        """Initialize and start the worker thread.

        Args:
            parameters: Estimator configuration (camera system, IMU, publishing)
        """
        self._parameters = parameters
        self._integrator = ImuIntegrator(gravity_magnitude=parameters.imu.g)
        self._queue: queue.Queue = queue.Queue(
            maxsize=max(1, parameters.engine.max_queue_size)
        )
        self._blocking = False
        self._full_state_callback: FullStateCallback | None = None
        self._landmarks_callback: LandmarksCallback | None = None

        # Worker-thread state
        self._state: ImuState | None = None
        self._imu_count = 0
        self._next_landmark_id = 0
        self._orb = cv2.ORB_create(nfeatures=parameters.engine.n_features)

        publish_rate = parameters.publishing.publish_rate
        self._publish_every = (
            max(1, int(round(parameters.imu.rate / publish_rate))) if publish_rate > 0 else 1
        )

        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name="dead-reckoning-estimator", daemon=True
        )
        self._thread.start()

    def add_imu_measurement(
        self,
        stamp: float,
        linear_acceleration: np.ndarray,
        angular_velocity: np.ndarray,
    ) -> bool:
        return self._submit(
            _ImuMessage(
                stamp=stamp,
                linear_acceleration=np.array(linear_acceleration, dtype=np.float64),
                angular_velocity=np.array(angular_velocity, dtype=np.float64),
            )
        )

    def add_image(self, stamp: float, camera_index: int, image: np.ndarray) -> bool:
        if camera_index < 0 or camera_index >= max(1, self._parameters.camera_system.num_cameras):
            logger.warning("Image for unknown camera %d ignored", camera_index)
            return False
        return self._submit(
            _ImageMessage(stamp=stamp, camera_index=camera_index, image=image.copy())
        )

    def set_full_state_callback(self, callback: FullStateCallback) -> None:
        self._full_state_callback = callback

    def set_landmarks_callback(self, callback: LandmarksCallback) -> None:
        self._landmarks_callback = callback

    def set_blocking(self, blocking: bool) -> None:
        self._blocking = blocking

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every measurement queued so far has been processed.

        Returns:
            True if the worker caught up before ``timeout``
        """
        if not self._thread.is_alive():
            return False
        done = threading.Event()
        self._queue.put(_FlushMessage(done))
        return done.wait(timeout=timeout)

    def shutdown(self) -> None:
        """Stop the worker thread."""
        if not self._thread.is_alive():
            return
        self._stop.set()
        try:
            self._queue.put_nowait(_ShutdownMessage())
        except queue.Full:
            pass  # the stop event ends the loop
        self._thread.join(timeout=2.0)
        if self._thread.is_alive():
            logger.warning("Estimator thread did not stop within 2 s")

    @property
    def is_running(self) -> bool:
        """Return True while the worker thread is alive."""
        return self._thread.is_alive()

    def _submit(self, msg: _ImuMessage | _ImageMessage) -> bool:
        if self._stop.is_set():
            return False
        if self._blocking:
            # No timeout: a stalled worker stalls the caller
            self._queue.put(msg)
            return True
        try:
            self._queue.put_nowait(msg)
            return True
        except queue.Full:
            return False

    def _run(self) -> None:
        """Worker loop."""
        while not self._stop.is_set():
            try:
                msg = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue

            if isinstance(msg, _ShutdownMessage):
                break
            if isinstance(msg, _FlushMessage):
                msg.done.set()
                continue

            try:
                if isinstance(msg, _ImuMessage):
                    self._handle_imu(msg)
                elif isinstance(msg, _ImageMessage):
                    self._handle_image(msg)
            except Exception:
                logger.exception("Estimator failed to process %s", type(msg).__name__)

    def _handle_imu(self, msg: _ImuMessage) -> None:
        if self._state is None:
            self._state = self._integrator.initial_state(
                msg.stamp, msg.linear_acceleration, msg.angular_velocity
            )
        else:
            self._state = self._integrator.integrate(
                self._state, msg.stamp, msg.linear_acceleration, msg.angular_velocity
            )
        self._imu_count += 1

        if (
            self._parameters.publishing.publish_imu_propagated_state
            and self._imu_count % self._publish_every == 0
        ):
            self._publish_state(msg.stamp)

    def _handle_image(self, msg: _ImageMessage) -> None:
        if self._state is None:
            logger.debug("Image at %f before first IMU sample, not published", msg.stamp)
            return
        if msg.camera_index != 0:
            return

        self._publish_state(msg.stamp)
        if self._parameters.publishing.publish_landmarks:
            self._publish_landmarks(msg.stamp, msg.image)

    def _tracked_pose(self) -> SE3:
        """Return the pose of the tracked frame in the world frame."""
        T_WS = self._state.T_WS
        if self._parameters.publishing.tracked_body_frame == FrameName.B:
            # T_WB = T_WS @ T_SB
            return T_WS @ self._parameters.imu.T_BS.inverse()
        return T_WS

    def _publish_state(self, stamp: float) -> None:
        callback = self._full_state_callback
        if callback is None:
            return
        callback(
            stamp,
            self._tracked_pose(),
            self._state.speed_and_biases,
            self._state.omega_S.copy(),
        )

    def _publish_landmarks(self, stamp: float, image: np.ndarray) -> None:
        callback = self._landmarks_callback
        camera_system = self._parameters.camera_system
        if callback is None or camera_system.num_cameras == 0:
            return

        keypoints = self._orb.detect(image, None)
        if not keypoints:
            callback(stamp, [], [])
            return

        responses = np.array([kp.response for kp in keypoints], dtype=np.float64)
        max_response = responses.max()
        publishing = self._parameters.publishing
        if max_response > 0:
            qualities = responses / max_response * publishing.max_landmark_quality
        else:
            qualities = np.zeros_like(responses)
        keep = qualities >= publishing.landmark_quality_threshold

        pixels = np.array([kp.pt for kp in keypoints], dtype=np.float64)[keep]
        rays = camera_system.camera(0).back_project(pixels)
        points_C = rays * self._parameters.engine.landmark_depth
        T_WC = self._state.T_WS @ camera_system.T_SC(0)
        points_W = T_WC.transform_points(points_C) if len(points_C) else points_C

        landmarks = []
        for point, quality in zip(points_W, qualities[keep]):
            landmarks.append(MapPoint(id=self._next_landmark_id, point=point, quality=quality))
            self._next_landmark_id += 1

        callback(stamp, landmarks, [])
