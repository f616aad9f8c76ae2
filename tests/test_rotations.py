import math

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from terrascope_app.math import rotations


def test_ypr_zero_is_identity():
    assert np.array_equal(rotations.ypr_matrix(0.0, 0.0, 0.0), np.eye(3))


def test_camera_rotation_zero_pose_is_the_permutation():
    rotation = rotations.camera_rotation(0.0, 0.0, 0.0, geocentric_convention=True)
    assert np.array_equal(rotation, rotations.NAV_TO_RENDER_PERMUTATION)


def test_camera_rotation_local_convention_skips_permutation():
    yaw, pitch, roll = 0.3, -0.2, 1.1
    rotation = rotations.camera_rotation(yaw, pitch, roll, geocentric_convention=False)
    np.testing.assert_array_equal(rotation, rotations.ypr_matrix(yaw, pitch, roll))
    assert np.array_equal(rotations.camera_rotation(0.0, 0.0, 0.0, False), np.eye(3))


def test_permutation_entries():
    expected = np.array([[0.0, 0.0, -1.0], [1.0, 0.0, 0.0], [0.0, -1.0, 0.0]])
    assert np.array_equal(rotations.NAV_TO_RENDER_PERMUTATION, expected)


def test_permutation_maps_render_axes_to_navigation_axes():
    perm = rotations.NAV_TO_RENDER_PERMUTATION
    # Camera looks down -Z: that is navigation forward (+X).
    np.testing.assert_array_equal(perm @ np.array([0.0, 0.0, -1.0]), [1.0, 0.0, 0.0])
    # Camera up (+Y) is navigation up (-Z, since +Z points down).
    np.testing.assert_array_equal(perm @ np.array([0.0, 1.0, 0.0]), [0.0, 0.0, -1.0])
    # Camera right (+X) is navigation right (+Y).
    np.testing.assert_array_equal(perm @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0])


def test_permutation_is_read_only():
    with pytest.raises(ValueError):
        rotations.NAV_TO_RENDER_PERMUTATION[0, 0] = 1.0


@pytest.mark.parametrize(
    "yaw, pitch, roll",
    [(0.1, 0.2, 0.3), (-1.2, 0.7, 2.5), (math.pi, -math.pi / 3, -0.4), (-0.8009253, 0.681823, 2.6025103)],
)
def test_ypr_matches_composed_axis_rotations(yaw, pitch, roll):
    composed = rotations.rot_z(yaw) @ rotations.rot_y(pitch) @ rotations.rot_x(roll)
    np.testing.assert_allclose(rotations.ypr_matrix(yaw, pitch, roll), composed, atol=1e-12)
    rotation = rotations.camera_rotation(yaw, pitch, roll)
    np.testing.assert_allclose(rotation @ rotation.T, np.eye(3), atol=1e-12)
    assert math.isclose(float(np.linalg.det(rotation)), 1.0, abs_tol=1e-12)


def test_yaw_turns_forward_axis_toward_right():
    forward = rotations.ypr_matrix(math.pi / 2, 0.0, 0.0) @ np.array([1.0, 0.0, 0.0])
    np.testing.assert_allclose(forward, [0.0, 1.0, 0.0], atol=1e-12)


def test_positive_pitch_raises_forward_axis():
    pitch = math.radians(30.0)
    forward = rotations.ypr_matrix(0.0, pitch, 0.0) @ np.array([1.0, 0.0, 0.0])
    np.testing.assert_allclose(forward, [math.cos(pitch), 0.0, -math.sin(pitch)], atol=1e-12)


def test_roll_keeps_forward_axis():
    forward = rotations.ypr_matrix(0.0, 0.0, 1.0) @ np.array([1.0, 0.0, 0.0])
    np.testing.assert_allclose(forward, [1.0, 0.0, 0.0], atol=1e-12)


def test_ecef_to_gl_quaternion_value():
    quat = rotations.ecef_to_gl_quaternion()
    np.testing.assert_allclose(quat, [-0.5, -0.5, -0.5, 0.5], atol=1e-12)
    assert math.isclose(float(np.linalg.norm(quat)), 1.0, abs_tol=1e-12)


def test_ecef_to_gl_quaternion_matches_intrinsic_euler_sequence():
    expected = Rotation.from_euler("YXZ", [-90.0, -90.0, 0.0], degrees=True).as_quat()
    quat = rotations.ecef_to_gl_quaternion()
    assert np.allclose(quat, expected, atol=1e-12) or np.allclose(quat, -expected, atol=1e-12)


def test_ecef_to_gl_quaternion_axes():
    matrix = rotations.quaternion_to_matrix(rotations.ecef_to_gl_quaternion())
    np.testing.assert_allclose(matrix @ [0.0, 0.0, 1.0], [0.0, 1.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(matrix @ [1.0, 0.0, 0.0], [0.0, 0.0, 1.0], atol=1e-12)
    np.testing.assert_allclose(matrix @ [0.0, 1.0, 0.0], [1.0, 0.0, 0.0], atol=1e-12)


def test_quaternion_matrix_conversion_is_consistent():
    matrix = rotations.ypr_matrix(-1.2, 0.7, 2.5)
    recovered = rotations.quaternion_to_matrix(rotations.matrix_to_quaternion(matrix))
    np.testing.assert_allclose(recovered, matrix, atol=1e-12)


def test_identity_quaternion_is_identity_matrix():
    np.testing.assert_allclose(rotations.quaternion_to_matrix(rotations.IDENTITY_QUATERNION), np.eye(3))


def test_euler_order_is_validated():
    with pytest.raises(ValueError):
        rotations.euler_to_matrix(0.0, 0.0, 0.0, "XXZ")


def test_euler_order_yxz_composition():
    x, y, z = 0.4, -0.3, 1.2
    expected = rotations.rot_y(y) @ rotations.rot_x(x) @ rotations.rot_z(z)
    np.testing.assert_allclose(rotations.euler_to_matrix(x, y, z, "YXZ"), expected, atol=1e-12)


def test_zero_quaternion_is_rejected():
    with pytest.raises(ValueError):
        rotations.quaternion_to_matrix(np.zeros(4))
