import math

import numpy as np
import pytest

from gesturetree.utils.quaternion import (
    IDENTITY,
    euler_to_quaternion,
    quaternion_to_euler,
    slerp,
    yaw_quaternion,
)


def test_yaw_matches_euler_y():
    np.testing.assert_allclose(yaw_quaternion(0.8), euler_to_quaternion([0.0, 0.8, 0.0]))


def test_yaw_batch_shape():
    assert yaw_quaternion(np.linspace(0, 1, 5)).shape == (5, 4)


@pytest.mark.parametrize("euler", [(0.1, 0.2, 0.3), (-1.0, 0.5, 2.0), (0.0, 0.0, 0.0)])
def test_euler_roundtrip(euler):
    np.testing.assert_allclose(quaternion_to_euler(euler_to_quaternion(euler)), euler, atol=1e-9)


def test_slerp_endpoints():
    target = yaw_quaternion(1.2)
    np.testing.assert_allclose(slerp(IDENTITY, target, 0.0), IDENTITY)
    np.testing.assert_allclose(slerp(IDENTITY, target, 1.0), target)


def test_slerp_halfway():
    np.testing.assert_allclose(slerp(IDENTITY, yaw_quaternion(math.pi / 2), 0.5), yaw_quaternion(math.pi / 4))


def test_slerp_takes_short_path():
    # -q 与 q 表示同一旋转
    result = slerp(IDENTITY, -yaw_quaternion(0.4), 0.5)
    np.testing.assert_allclose(np.abs(result), np.abs(yaw_quaternion(0.2)), atol=1e-12)


def test_slerp_of_identical_rotations_is_stable():
    q = np.tile(yaw_quaternion(0.3), (3, 1))
    np.testing.assert_allclose(slerp(q, q, 0.05), q)
