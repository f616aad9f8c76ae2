"""Geometry helpers for triangle soups: normals, transforms and ray casting."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(slots=True)
class RayHit:
    """Closest intersection of a ray with a triangle soup."""

    distance: float
    point: np.ndarray
    normal: np.ndarray
    triangle_index: int


def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 4x4 affine transform to an ``(N, 3)`` array."""
    m = np.asarray(matrix, dtype=np.float64).reshape(4, 4)
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return (pts @ m[:3, :3].T) + m[:3, 3]


def rotate_points(rotation: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 3x3 rotation to an ``(N, 3)`` array."""
    r = np.asarray(rotation, dtype=np.float64).reshape(3, 3)
    return np.asarray(points, dtype=np.float64).reshape(-1, 3) @ r.T


def triangle_normals(positions: np.ndarray) -> np.ndarray:
    """Unit face normals for sequential vertex triples.

    Counter-clockwise winding gives outward normals. Degenerate triangles get
    a zero normal.
    """
    tri = np.asarray(positions, dtype=np.float64).reshape(-1, 3, 3)
    cb = tri[:, 2] - tri[:, 1]
    ab = tri[:, 0] - tri[:, 1]
    normals = np.cross(cb, ab)
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    np.divide(normals, lengths, out=normals, where=lengths > 0.0)
    return normals


def vertex_normals(positions: np.ndarray) -> np.ndarray:
    """Per-vertex normals for a non-indexed triangle soup.

    Each vertex belongs to exactly one triangle and takes its face normal.
    """
    return np.repeat(triangle_normals(positions), 3, axis=0)


def intersect_ray_triangles(
    origin: np.ndarray,
    direction: np.ndarray,
    positions: np.ndarray,
    *,
    epsilon: float = 1e-12,
) -> Optional[RayHit]:
    """Intersect a ray with every triangle of a soup (Moller-Trumbore).

    Args:
        origin: Ray origin, shape ``(3,)``.
        direction: Ray direction, does not need to be unit length.
        positions: Triangle soup, shape ``(3 * T, 3)``.
        epsilon: Determinant magnitude below which a triangle is treated as
            parallel to the ray.

    Returns:
        The closest hit in front of the origin, or ``None``. ``distance`` is
        measured in units of the normalised direction.
    """
    o = np.asarray(origin, dtype=np.float64).reshape(3)
    d = np.asarray(direction, dtype=np.float64).reshape(3)
    norm = float(np.linalg.norm(d))
    if norm <= epsilon:
        raise ValueError("Ray direction vector is degenerate.")
    d = d / norm

    tri = np.asarray(positions, dtype=np.float64).reshape(-1, 3, 3)
    if tri.shape[0] == 0:
        return None

    v0 = tri[:, 0]
    edge1 = tri[:, 1] - v0
    edge2 = tri[:, 2] - v0
    pvec = np.cross(d, edge2)
    det = np.einsum("ij,ij->i", edge1, pvec)
    valid = np.abs(det) > epsilon
    inv_det = np.zeros_like(det)
    inv_det[valid] = 1.0 / det[valid]

    tvec = o - v0
    u = np.einsum("ij,ij->i", tvec, pvec) * inv_det
    qvec = np.cross(tvec, edge1)
    v = (qvec @ d) * inv_det
    t = np.einsum("ij,ij->i", edge2, qvec) * inv_det

    hits = valid & (u >= 0.0) & (v >= 0.0) & ((u + v) <= 1.0) & (t > epsilon)
    if not np.any(hits):
        return None

    candidates = np.flatnonzero(hits)
    best = int(candidates[np.argmin(t[candidates])])
    distance = float(t[best])
    normal = triangle_normals(tri[best])[0]
    return RayHit(distance=distance, point=o + distance * d, normal=normal, triangle_index=best)
