"""Rerun-based visualization for visual-inertial odometry output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

import numpy as np
import rerun as rr
import rerun.blueprint as rrb

if TYPE_CHECKING:
    from ..fusion.driver import FusionResult
    from ..sensors.pose import SE3


class RerunVisualizer:
    """Rerun-based visualization of the fusion driver output.

    Entity hierarchy:
        camera/
            image           - Grayscale input image
        world/
            body            - Accumulated odometry pose
            trajectory      - Odometry trajectory (yellow)
            landmarks       - Estimator landmarks (colored by height)
        plots/
            timing          - Processing time per call (ms)
    """

    def __init__(self, app_name: str = "python-vio-fusion", spawn: bool = True) -> None:
        """Initialize Rerun visualization.

        Args:
            app_name: Name for the Rerun application window
            spawn: If True, automatically spawn the Rerun viewer
        """
        rr.init(app_name, spawn=spawn)
        self._positions: list[np.ndarray] = []
        self._setup_coordinate_system()
        self._setup_layout()

    def _setup_coordinate_system(self) -> None:
        """Odometry is reported x-forward, y-left, z-up."""
        rr.log("world", rr.ViewCoordinates.FLU, static=True)

    def _setup_layout(self) -> None:
        blueprint = rrb.Blueprint(
            rrb.Horizontal(
                contents=[
                    rrb.Vertical(
                        contents=[
                            rrb.Spatial2DView(name="Camera", origin="camera/image"),
                            rrb.TimeSeriesView(name="Timing", origin="plots"),
                        ]
                    ),
                    rrb.Spatial3DView(name="Odometry", origin="world"),
                ]
            )
        )
        rr.send_blueprint(blueprint)

    def set_time(self, stamp: float) -> None:
        """Set the timeline position in seconds."""
        rr.set_time("timestamp", duration=stamp)

    def log_image(self, image: np.ndarray) -> None:
        rr.log("camera/image", rr.Image(image))

    def log_pose(self, pose: SE3, entity_path: str = "world/body") -> None:
        """Log the accumulated pose and extend the trajectory.

        Args:
            pose: Pose in the reporting frame
            entity_path: Rerun entity path for the body
        """
        rr.log(
            entity_path,
            rr.Transform3D(translation=pose.translation, mat3x3=pose.rotation),
        )
        self._positions.append(pose.position)
        self.log_trajectory(np.array(self._positions, dtype=np.float64))

    def log_trajectory(
        self,
        positions: np.ndarray,
        entity_path: str = "world/trajectory",
    ) -> None:
        """Log the trajectory as a 3D line strip.

        Args:
            positions: Nx3 array of positions
            entity_path: Rerun entity path for the trajectory
        """
        if len(positions) < 2:
            return

        rr.log(
            entity_path,
            rr.LineStrips3D(
                [positions],
                colors=[[255, 255, 0]],  # Yellow
                radii=0.01,
            ),
        )

    def log_landmarks(
        self,
        landmarks: Mapping[int, np.ndarray],
        entity_path: str = "world/landmarks",
    ) -> None:
        """Log landmarks colored by height.

        Args:
            landmarks: Landmark id to 3D position
            entity_path: Rerun entity path for the landmarks
        """
        if not landmarks:
            return

        ids = np.array(list(landmarks.keys()), dtype=np.int64)
        positions = np.array([landmarks[i] for i in ids], dtype=np.float64).reshape(-1, 3)

        valid_mask = np.isfinite(positions).all(axis=1)
        positions = positions[valid_mask]
        ids = ids[valid_mask]
        if len(positions) == 0:
            return

        heights = positions[:, 2]
        h_min, h_max = np.percentile(heights, [5, 95])
        h_range = max(h_max - h_min, 0.1)
        normalized = np.clip((heights - h_min) / h_range, 0, 1)

        # Purple to white gradient
        colors = np.zeros((len(positions), 3), dtype=np.uint8)
        colors[:, 0] = (128 + normalized * 127).astype(np.uint8)
        colors[:, 1] = (normalized * 255).astype(np.uint8)
        colors[:, 2] = (255 - normalized * 127).astype(np.uint8)

        rr.log(
            entity_path,
            rr.Points3D(positions, colors=colors, radii=0.03, keypoint_ids=ids),
        )

    def log_result(self, result: FusionResult, pose: SE3) -> None:
        """Log one driver result.

        Args:
            result: Output of ``FusionDriver.process``
            pose: Accumulated pose after applying ``result.transform``
        """
        rr.log("plots/timing", rr.Scalars(result.timing_ms))
        if result.is_null:
            return
        self.log_pose(pose)
        if result.landmarks:
            self.log_landmarks(result.landmarks)
