"""SE(3) rigid transform shared by extrinsics, estimator poses and odometry output."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial.transform import Rotation


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation) in SE(3).

    ``T_a_b`` maps points expressed in frame ``b`` into frame ``a``:

        p_a = R @ p_b + t

    Composition follows matrix order, so ``T_a_b @ T_b_c`` is ``T_a_c``.

    A transform whose rotation and translation are all zeros is the *null*
    sentinel. It is never a valid pose and is used to signal "no pose".

    Attributes:
        rotation: 3x3 rotation matrix (all zeros for the null sentinel)
        translation: 3D translation vector
    """

    rotation: np.ndarray  # 3x3 rotation matrix
    translation: np.ndarray  # (3,) translation vector

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        self.rotation = np.array(self.rotation, dtype=np.float64)
        self.translation = np.array(self.translation, dtype=np.float64).flatten()

        if self.rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(
                f"Translation must be (3,), got {self.translation.shape}"
            )

    @classmethod
    def identity(cls) -> SE3:
        """Create identity transformation."""
        return cls(rotation=np.eye(3), translation=np.zeros(3))

    @classmethod
    def null(cls) -> SE3:
        """Create the null sentinel (all zeros)."""
        return cls(rotation=np.zeros((3, 3)), translation=np.zeros(3))

    @classmethod
    def from_translation(cls, x: float, y: float, z: float) -> SE3:
        """Create a pure translation."""
        return cls(rotation=np.eye(3), translation=np.array([x, y, z]))

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> SE3:
        """Create SE3 from a 4x4 (or 3x4) homogeneous transformation matrix.

        Args:
            T: Transformation matrix of the form [[R t] [0 1]] or [R t]

        Returns:
            SE3 transformation
        """
        T = np.asarray(T, dtype=np.float64)
        if T.shape not in ((4, 4), (3, 4)):
            raise ValueError(f"Transform must be 4x4 or 3x4, got {T.shape}")

        return cls(rotation=T[:3, :3], translation=T[:3, 3])

    @classmethod
    def from_Rt(cls, R: np.ndarray, t: np.ndarray) -> SE3:
        """Create SE3 from rotation matrix and translation vector.

        Args:
            R: 3x3 rotation matrix
            t: 3D translation vector (any shape that flattens to 3)
        """
        return cls(rotation=R, translation=t)

    @classmethod
    def from_quaternion(
        cls,
        qw: float,
        qx: float,
        qy: float,
        qz: float,
        translation: np.ndarray,
    ) -> SE3:
        """Create SE3 from a Hamilton quaternion (w, x, y, z) and translation.

        The quaternion is normalized before conversion.

        Args:
            qw: Quaternion scalar (w) component
            qx: Quaternion x component
            qy: Quaternion y component
            qz: Quaternion z component
            translation: 3D translation vector

        Returns:
            SE3 transformation
        """
        norm = np.sqrt(qw * qw + qx * qx + qy * qy + qz * qz)
        if norm < 1e-12:
            raise ValueError("Quaternion has zero norm")

        # scipy uses scalar-last ordering
        R = Rotation.from_quat([qx / norm, qy / norm, qz / norm, qw / norm]).as_matrix()
        return cls(rotation=R, translation=np.asarray(translation).flatten())

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 homogeneous transformation matrix."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def to_quaternion(self) -> np.ndarray:
        """Return the normalized rotation as a (w, x, y, z) quaternion.

        The sign is chosen so that w >= 0.

        Raises:
            ValueError: If called on the null sentinel
        """
        if self.is_null():
            raise ValueError("Null transform has no rotation")

        qx, qy, qz, qw = Rotation.from_matrix(self.rotation).as_quat()
        q = np.array([qw, qx, qy, qz], dtype=np.float64)
        q /= np.linalg.norm(q)
        if q[0] < 0:
            q = -q
        return q

    def inverse(self) -> SE3:
        """Compute the inverse transformation.

        For T = [R, t], the inverse is [R^T, -R^T @ t]. The inverse of the
        null sentinel is the null sentinel.
        """
        R_inv = self.rotation.T
        t_inv = -R_inv @ self.translation
        return SE3(rotation=R_inv, translation=t_inv)

    def compose(self, other: SE3) -> SE3:
        """Compose with another transformation: ``self @ other``.

        Example:
            T_world_prev.compose(T_prev_curr) gives T_world_curr
        """
        R = self.rotation @ other.rotation
        t = self.rotation @ other.translation + self.translation
        return SE3(rotation=R, translation=t)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Apply the transform to an Nx3 array of points."""
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            points = points.reshape(1, 3)

        if points.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {points.shape}")

        return (self.rotation @ points.T).T + self.translation

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """Apply the transform to a single 3D point."""
        point = np.asarray(point, dtype=np.float64).flatten()
        return self.rotation @ point + self.translation

    def is_null(self) -> bool:
        """Return True for the null sentinel."""
        return not np.any(self.rotation) and not np.any(self.translation)

    def is_identity(self, atol: float = 1e-9) -> bool:
        """Return True if this is the identity transform within ``atol``."""
        return bool(
            np.allclose(self.rotation, np.eye(3), atol=atol)
            and np.allclose(self.translation, 0.0, atol=atol)
        )

    def is_close(self, other: SE3, atol: float = 1e-9) -> bool:
        """Return True if both transforms match element-wise within ``atol``."""
        return bool(
            np.allclose(self.rotation, other.rotation, atol=atol)
            and np.allclose(self.translation, other.translation, atol=atol)
        )

    def copy(self) -> SE3:
        """Return a deep copy."""
        return SE3(rotation=self.rotation.copy(), translation=self.translation.copy())

    @property
    def position(self) -> np.ndarray:
        """Return the translation component."""
        return self.translation.copy()

    def pretty(self) -> str:
        """Return a compact xyz/rpy string, as used in log messages."""
        if self.is_null():
            return "null"
        roll, pitch, yaw = Rotation.from_matrix(self.rotation).as_euler("xyz")
        x, y, z = self.translation
        return (
            f"xyz={x:.3f},{y:.3f},{z:.3f} "
            f"rpy={roll:.3f},{pitch:.3f},{yaw:.3f}"
        )

    def __repr__(self) -> str:
        """Return string representation."""
        if self.is_null():
            return "SE3(null)"
        pos = self.translation
        return f"SE3(position=[{pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f}])"

    def __matmul__(self, other: SE3) -> SE3:
        """Composition operator: ``T_result = T1 @ T2``."""
        return self.compose(other)
