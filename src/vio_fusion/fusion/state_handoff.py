"""Thread-safe exchange of estimator output between threads.

The estimator writes from its own thread through the callbacks below; the
fusion driver reads snapshots from the caller's thread. Pose and landmarks
are guarded independently and are not required to be mutually consistent.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Sequence, TypeVar

import numpy as np

from ..estimator.interface import MapPoint
from ..sensors.pose import SE3

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GuardedValue(Generic[T]):
    """A single value behind its own lock.

    ``copy`` is applied on every read so callers never share state with the
    writer.
    """

    def __init__(self, value: T, copy: Callable[[T], T] | None = None) -> None:
        self._lock = threading.Lock()
        self._value = value
        self._copy = copy

    def read(self) -> T:
        """Return a snapshot of the current value."""
        with self._lock:
            value = self._value
            return self._copy(value) if self._copy is not None else value

    def write(self, value: T) -> None:
        """Replace the current value."""
        with self._lock:
            self._value = value

    def swap(self, value: T) -> T:
        """Replace the current value and return the previous one."""
        with self._lock:
            previous = self._value
            self._value = value
        return previous


def _copy_landmarks(landmarks: dict[int, np.ndarray]) -> dict[int, np.ndarray]:
    return {landmark_id: point.copy() for landmark_id, point in landmarks.items()}


class StateHandoff:
    """Latest pose and landmark set published by the estimator.

    Landmark updates raise a "fresh landmarks" notification only when they
    arrive while the stored set is empty; updates over a non-empty set are
    refreshes and do not notify. Writers never wait on readers.
    """

    def __init__(self) -> None:
        self._pose: GuardedValue[SE3] = GuardedValue(SE3.null(), copy=SE3.copy)
        self._landmarks: GuardedValue[dict[int, np.ndarray]] = GuardedValue(
            {}, copy=_copy_landmarks
        )
        self._fresh_landmarks = threading.Semaphore(0)

    def full_state_callback(
        self,
        stamp: float,
        T_WS: SE3,
        speed_and_biases: np.ndarray,
        omega_S: np.ndarray,
    ) -> None:
        """Store the latest published pose (called on the estimator thread)."""
        logger.debug("State update stamp=%f %s", stamp, T_WS.pretty())
        self._pose.write(T_WS.copy())

    def landmarks_callback(
        self,
        stamp: float,
        landmarks: Sequence[MapPoint],
        transferred_landmarks: Sequence[MapPoint],
    ) -> None:
        """Replace the landmark set (called on the estimator thread)."""
        updated = {
            int(lm.id): np.asarray(lm.point, dtype=np.float64)[:3].copy() for lm in landmarks
        }
        previous = self._landmarks.swap(updated)
        if not previous:
            self._fresh_landmarks.release()

    def last_transform(self) -> SE3:
        """Return the latest pose, or the null sentinel if none was published."""
        return self._pose.read()

    def last_landmarks(self) -> dict[int, np.ndarray]:
        """Return a copy of the latest landmark set."""
        return self._landmarks.read()

    def wait_for_landmarks(self, timeout: float | None = None) -> bool:
        """Consume one "fresh landmarks" notification.

        Args:
            timeout: Seconds to wait; None waits forever, 0 polls

        Returns:
            True if a notification was consumed
        """
        if timeout is not None and timeout <= 0:
            return self._fresh_landmarks.acquire(blocking=False)
        return self._fresh_landmarks.acquire(timeout=timeout)
