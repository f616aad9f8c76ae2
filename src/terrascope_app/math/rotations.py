"""Rotation builders for navigation and render camera frames.

Two conventions meet here:

- Navigation frame: +X forward, +Y right, +Z down. Orientation is given as
  intrinsic yaw (about Z), pitch (about the new Y) and roll (about the new X).
- Render camera frame: the camera looks down its local -Z axis with +Y up.

``NAV_TO_RENDER_PERMUTATION`` maps the render camera axes onto the
navigation axes, so ``ypr_matrix(...) @ NAV_TO_RENDER_PERMUTATION`` orients a
render camera from a navigation attitude.

Quaternions are stored as ``(x, y, z, w)``.
"""
from __future__ import annotations

import math

import numpy as np
from scipy.spatial.transform import Rotation

IDENTITY_QUATERNION = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)


def rot_x(angle_rad: float) -> np.ndarray:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]], dtype=np.float64)


def rot_y(angle_rad: float) -> np.ndarray:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]], dtype=np.float64)


def rot_z(angle_rad: float) -> np.ndarray:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)


def _snap(matrix: np.ndarray) -> np.ndarray:
    # Quarter turns should produce exact 0/±1 entries.
    snapped = np.round(matrix)
    return np.where(np.abs(matrix - snapped) < 1e-12, snapped, matrix) + 0.0


# Render camera (-Z forward, +Y up, +X right) to navigation (+X forward,
# +Y right, +Z down).
NAV_TO_RENDER_PERMUTATION = _snap(rot_z(math.radians(90.0)) @ rot_x(math.radians(-90.0)))
NAV_TO_RENDER_PERMUTATION.setflags(write=False)


def ypr_matrix(yaw: float, pitch: float, roll: float) -> np.ndarray:
    """Return the intrinsic yaw-pitch-roll rotation matrix (angles in radians).

    Equivalent to ``rot_z(yaw) @ rot_y(pitch) @ rot_x(roll)``; the local +X
    axis of the result points along the rotated forward direction.
    """
    cy, sy = math.cos(yaw), math.sin(yaw)
    cp, sp = math.cos(pitch), math.sin(pitch)
    cr, sr = math.cos(roll), math.sin(roll)
    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ],
        dtype=np.float64,
    )


def camera_rotation(
    yaw: float,
    pitch: float,
    roll: float,
    geocentric_convention: bool = True,
) -> np.ndarray:
    """Return the render camera rotation for a yaw/pitch/roll attitude.

    With ``geocentric_convention`` the attitude is relative to the navigation
    frame and the fixed axis permutation is appended. Otherwise the attitude is
    already expressed in the renderer's local frame and is used unchanged.
    """
    rotation = ypr_matrix(yaw, pitch, roll)
    if geocentric_convention:
        return rotation @ NAV_TO_RENDER_PERMUTATION
    return rotation


def euler_to_matrix(x: float, y: float, z: float, order: str = "XYZ") -> np.ndarray:
    """Build a rotation matrix from intrinsic Euler angles in radians.

    ``order`` lists the axes outermost first, e.g. ``"YXZ"`` yields
    ``rot_y(y) @ rot_x(x) @ rot_z(z)``.
    """
    order = order.upper()
    if sorted(order) != ["X", "Y", "Z"]:
        raise ValueError(f"Euler order must be a permutation of 'XYZ', got {order!r}")
    angles = {"X": x, "Y": y, "Z": z}
    # Upper-case axes are intrinsic in scipy.
    return Rotation.from_euler(order, [angles[axis] for axis in order]).as_matrix()


def matrix_to_quaternion(matrix: np.ndarray) -> np.ndarray:
    """Convert a 3x3 rotation matrix to a unit quaternion ``(x, y, z, w)`` with ``w >= 0``."""
    quat = Rotation.from_matrix(np.asarray(matrix, dtype=np.float64).reshape(3, 3)).as_quat()
    if quat[3] < 0.0:
        quat = -quat
    return quat


def quaternion_to_matrix(quaternion: np.ndarray) -> np.ndarray:
    """Convert a quaternion ``(x, y, z, w)`` to a 3x3 rotation matrix."""
    q = np.asarray(quaternion, dtype=np.float64).reshape(4)
    if float(np.linalg.norm(q)) <= 1e-12:
        raise ValueError("Quaternion has zero length.")
    return Rotation.from_quat(q).as_matrix()


def euler_to_quaternion(x: float, y: float, z: float, order: str = "XYZ") -> np.ndarray:
    """Quaternion for intrinsic Euler angles, see :func:`euler_to_matrix`."""
    return matrix_to_quaternion(euler_to_matrix(x, y, z, order))


def ecef_to_gl_quaternion() -> np.ndarray:
    """Quaternion that turns geocentric subtrees into the render frame.

    Built from the intrinsic Euler sequence (-90, -90, 0) degrees in ``YXZ``
    order; ECEF +Z (north pole) becomes render +Y (up).
    """
    return euler_to_quaternion(math.radians(-90.0), math.radians(-90.0), 0.0, "YXZ")
