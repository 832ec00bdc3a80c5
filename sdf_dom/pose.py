from dataclasses import dataclass

import numpy as np
from scipy.spatial.transform import Rotation

__all__ = ["Pose", "POSE_TOLERANCE", "rpy_to_quat", "quat_to_rpy"]

POSE_TOLERANCE = 1e-6


def _to_rotation(quat: tuple[float, float, float, float]) -> Rotation:
    w, x, y, z = quat
    # scipy expects scalar-last quaternions
    return Rotation.from_quat([x, y, z, w])


def _from_rotation(rotation: Rotation) -> tuple[float, float, float, float]:
    x, y, z, w = rotation.as_quat()
    return (float(w), float(x), float(y), float(z))


def rpy_to_quat(rpy: tuple[float, float, float]) -> tuple[float, float, float, float]:
    """Convert roll-pitch-yaw Euler angles to unit quaternion

    Args:
        rpy: Tuple of (roll, pitch, yaw) in radians, applied about the fixed x, y, z axes

    Returns:
        (w, x, y, z) unit quaternion
    """
    return _from_rotation(Rotation.from_euler("xyz", rpy))


def quat_to_rpy(quat: tuple[float, float, float, float]) -> tuple[float, float, float]:
    """Convert unit quaternion to roll-pitch-yaw Euler angles

    Args:
        quat: (w, x, y, z) unit quaternion

    Returns:
        (roll, pitch, yaw) in radians
    """
    roll, pitch, yaw = _to_rotation(quat).as_euler("xyz")
    return (float(roll), float(pitch), float(yaw))


@dataclass(frozen=True, eq=False)
class Pose:
    """Position and orientation in SE(3)

    A pose maps coordinates expressed in its own frame into the frame it is
    relative to. Equality is approximate, see ``is_close``.

    Attributes:
        xyz: (x, y, z) position in meters, defaults to (0.0, 0.0, 0.0)
        quat: (w, x, y, z) unit quaternion, defaults to (1.0, 0.0, 0.0, 0.0)
    """

    xyz: tuple[float, float, float] = (0.0, 0.0, 0.0)
    quat: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)

    def __post_init__(self):
        if len(self.xyz) != 3:
            raise ValueError(f"Expected 3 position values, got {len(self.xyz)}")
        if len(self.quat) != 4:
            raise ValueError(f"Expected 4 quaternion values, got {len(self.quat)}")

        norm = float(np.linalg.norm(self.quat))
        if norm == 0.0:
            raise ValueError("Quaternion must have non-zero norm")

        # canonicalize
        sign = -1.0 if self.quat[0] < 0 else 1.0
        object.__setattr__(self, "xyz", tuple(float(v) for v in self.xyz))
        object.__setattr__(self, "quat", tuple(float(sign * q / norm) for q in self.quat))

    @classmethod
    def from_xyz_rpy(
        cls, x: float = 0.0, y: float = 0.0, z: float = 0.0, roll: float = 0.0, pitch: float = 0.0, yaw: float = 0.0
    ) -> "Pose":
        """Create a pose from a position and roll-pitch-yaw Euler angles in radians"""
        return cls(xyz=(x, y, z), quat=rpy_to_quat((roll, pitch, yaw)))

    @classmethod
    def from_xyz_quat(cls, xyz: tuple[float, float, float], quat_xyzw: tuple[float, float, float, float]) -> "Pose":
        """Create a pose from a position and an (x, y, z, w) quaternion"""
        qx, qy, qz, qw = quat_xyzw
        return cls(xyz=xyz, quat=(qw, qx, qy, qz))

    @property
    def rpy(self) -> tuple[float, float, float]:
        """Orientation as (roll, pitch, yaw) in radians"""
        return quat_to_rpy(self.quat)

    @property
    def rotation(self) -> Rotation:
        return _to_rotation(self.quat)

    def compose(self, other: "Pose") -> "Pose":
        """Chain another pose after this one

        If ``self`` is the pose of frame B in frame A and ``other`` is the pose
        of frame C in frame B, the result is the pose of frame C in frame A.

        Args:
            other: Pose expressed in the frame described by this pose

        Returns:
            Composed pose
        """
        rotation = self.rotation
        xyz = np.asarray(self.xyz) + rotation.apply(other.xyz)
        return Pose(xyz=tuple(xyz), quat=_from_rotation(rotation * other.rotation))

    def inverse(self) -> "Pose":
        """Pose of the reference frame as seen from this pose's frame"""
        inverse = self.rotation.inv()
        return Pose(xyz=tuple(-inverse.apply(self.xyz)), quat=_from_rotation(inverse))

    def is_close(self, other: "Pose", tol: float = POSE_TOLERANCE) -> bool:
        """Compare two poses with an absolute tolerance

        Args:
            other: Pose to compare against
            tol: Absolute tolerance on every position and quaternion component

        Returns:
            True if both poses describe the same transform within tolerance
        """
        if not np.allclose(self.xyz, other.xyz, rtol=0.0, atol=tol):
            return False

        # q and -q are the same rotation
        quat, other_quat = np.asarray(self.quat), np.asarray(other.quat)
        return bool(
            np.allclose(quat, other_quat, rtol=0.0, atol=tol) or np.allclose(quat, -other_quat, rtol=0.0, atol=tol)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pose):
            return NotImplemented
        return self.is_close(other)

    __hash__ = None  # ty: ignore[invalid-assignment]
