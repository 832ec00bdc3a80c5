import math

import pytest
from scipy.spatial.transform import Rotation

from sdf_dom.pose import Pose, quat_to_rpy, rpy_to_quat


def test_identity() -> None:
    """Test the default pose is the identity"""
    pose = Pose()

    assert pose.xyz == (0.0, 0.0, 0.0)
    assert pose.quat == (1.0, 0.0, 0.0, 0.0)
    assert pose.rpy == pytest.approx((0.0, 0.0, 0.0))


def test_quaternion_is_normalized() -> None:
    """Test quaternions are normalized and canonicalized to a non-negative w"""
    assert Pose(quat=(2.0, 0.0, 0.0, 0.0)).quat == (1.0, 0.0, 0.0, 0.0)
    assert Pose(quat=(-1.0, 0.0, 0.0, 0.0)).quat == (1.0, 0.0, 0.0, 0.0)

    pose = Pose(quat=(-0.5, -0.5, -0.5, -0.5))
    assert pose.quat == pytest.approx((0.5, 0.5, 0.5, 0.5))


def test_invalid_pose() -> None:
    """Test malformed poses raise ValueError"""
    with pytest.raises(ValueError, match="non-zero norm"):
        Pose(quat=(0.0, 0.0, 0.0, 0.0))

    with pytest.raises(ValueError, match="3 position values"):
        Pose(xyz=(1.0, 2.0))  # ty: ignore[invalid-argument-type]

    with pytest.raises(ValueError, match="4 quaternion values"):
        Pose(quat=(1.0, 0.0, 0.0))  # ty: ignore[invalid-argument-type]


def test_rpy_conversion() -> None:
    """Test roll-pitch-yaw angles survive conversion to a quaternion"""
    rpy = (0.3, -0.2, 0.1)

    assert quat_to_rpy(rpy_to_quat(rpy)) == pytest.approx(rpy)
    assert Pose.from_xyz_rpy(1.0, 2.0, 3.0, *rpy).rpy == pytest.approx(rpy)
    assert rpy_to_quat((0.0, 0.0, math.pi / 2)) == pytest.approx((math.sqrt(0.5), 0.0, 0.0, math.sqrt(0.5)))


def test_from_xyz_quat() -> None:
    """Test quaternions given as (x, y, z, w) are stored as (w, x, y, z)"""
    pose = Pose.from_xyz_quat((1.0, 0.0, 0.0), (0.0, 0.0, math.sqrt(0.5), math.sqrt(0.5)))

    assert pose.quat == pytest.approx((math.sqrt(0.5), 0.0, 0.0, math.sqrt(0.5)))
    assert pose == Pose.from_xyz_rpy(1.0, 0.0, 0.0, 0.0, 0.0, math.pi / 2)


def test_compose() -> None:
    """Test composing applies the second pose in the frame of the first"""
    yawed = Pose.from_xyz_rpy(1.0, 0.0, 0.0, 0.0, 0.0, math.pi / 2)
    offset = Pose.from_xyz_rpy(1.0, 0.0, 0.0)

    result = yawed.compose(offset)

    assert result.xyz == pytest.approx((1.0, 1.0, 0.0))
    assert result.rpy == pytest.approx((0.0, 0.0, math.pi / 2))
    assert offset.compose(yawed).xyz == pytest.approx((2.0, 0.0, 0.0))


def test_inverse() -> None:
    """Test a pose composed with its inverse is the identity"""
    pose = Pose.from_xyz_rpy(0.5, -1.0, 2.0, 0.3, -0.2, 0.1)

    assert pose.compose(pose.inverse()) == Pose()
    assert pose.inverse().compose(pose) == Pose()
    assert pose.inverse().inverse() == pose

    yawed = Pose.from_xyz_rpy(1.0, 0.0, 0.0, 0.0, 0.0, math.pi / 2)
    assert yawed.inverse().xyz == pytest.approx((0.0, 1.0, 0.0))


def test_equality_is_approximate() -> None:
    """Test equality tolerates rounding and quaternion sign"""
    assert Pose(xyz=(1.0, 0.0, 0.0)) == Pose(xyz=(1.0 + 1e-9, 0.0, 0.0))
    assert Pose(xyz=(1.0, 0.0, 0.0)) != Pose(xyz=(1.001, 0.0, 0.0))
    # w == 0 is not flipped by canonicalization
    assert Pose(quat=(0.0, 0.0, 0.0, 1.0)) == Pose(quat=(0.0, 0.0, 0.0, -1.0))
    assert Pose(xyz=(1.0, 0.0, 0.0)).is_close(Pose(xyz=(1.05, 0.0, 0.0)), tol=0.1)


def test_pose_is_unhashable() -> None:
    """Test poses can't be hashed since equality is approximate"""
    with pytest.raises(TypeError):
        hash(Pose())


def test_rotation_matches_scipy() -> None:
    """Test composed orientations agree with scipy rotations about fixed axes"""
    a = Pose.from_xyz_rpy(0.0, 0.0, 0.0, 0.3, -0.2, 0.1)
    b = Pose.from_xyz_rpy(1.0, 2.0, 3.0, -0.4, 0.5, 1.2)

    expected = Rotation.from_euler("xyz", (0.3, -0.2, 0.1)) * Rotation.from_euler("xyz", (-0.4, 0.5, 1.2))
    composed = a.compose(b)

    assert composed.rotation.as_matrix() == pytest.approx(expected.as_matrix())
    assert composed.xyz == pytest.approx(tuple(Rotation.from_euler("xyz", (0.3, -0.2, 0.1)).apply((1.0, 2.0, 3.0))))
    assert all(isinstance(v, float) for v in composed.xyz + composed.quat)
