"""Terrain tile rewriting from projected (UTM) model space into ECEF."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from ..errors import UnsupportedTopology
from ..math.geometry import rotate_points, transform_points, vertex_normals
from ..math.projection import ProjectionConverter
from ..math.rotations import IDENTITY_QUATERNION, quaternion_to_matrix
from ..models.scene_nodes import MeshNode, SceneNode, iter_meshes
from .loader import fetch_scene


@dataclass(frozen=True, slots=True)
class DebugMaterial:
    """Flat colour material used for every rewritten tile."""

    color: Tuple[float, float, float] = (1.0, 0.0, 0.0)
    wireframe: bool = True


# Rewritten tiles do not keep their source surface attributes.
DEBUG_MATERIAL = DebugMaterial()


@dataclass(frozen=True, slots=True, eq=False)
class BoundingBox:
    """Axis-aligned bounding box; empty when ``minimum > maximum``."""

    minimum: np.ndarray = field(default_factory=lambda: np.full(3, np.inf))
    maximum: np.ndarray = field(default_factory=lambda: np.full(3, -np.inf))

    @classmethod
    def empty(cls) -> "BoundingBox":
        return cls()

    @classmethod
    def from_points(cls, points: np.ndarray) -> "BoundingBox":
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if pts.shape[0] == 0:
            return cls()
        return cls(pts.min(axis=0), pts.max(axis=0))

    @property
    def is_empty(self) -> bool:
        return bool(np.any(self.minimum > self.maximum))

    @property
    def center(self) -> np.ndarray:
        if self.is_empty:
            return np.zeros(3, dtype=np.float64)
        return 0.5 * (self.minimum + self.maximum)

    @property
    def size(self) -> np.ndarray:
        if self.is_empty:
            return np.zeros(3, dtype=np.float64)
        return self.maximum - self.minimum

    def union(self, other: "BoundingBox") -> "BoundingBox":
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        return BoundingBox(np.minimum(self.minimum, other.minimum), np.maximum(self.maximum, other.maximum))

    def corners(self) -> np.ndarray:
        """The eight corners, shape ``(8, 3)``."""
        lo, hi = self.minimum, self.maximum
        return np.array(
            [[x, y, z] for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])],
            dtype=np.float64,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundingBox):
            return NotImplemented
        if self.is_empty or other.is_empty:
            return self.is_empty and other.is_empty
        return bool(np.array_equal(self.minimum, other.minimum) and np.array_equal(self.maximum, other.maximum))


@dataclass(slots=True)
class TerrainTile:
    """One rewritten terrain mesh in ECEF (non-indexed triangle soup)."""

    name: str
    positions: np.ndarray
    normals: np.ndarray
    bounds: BoundingBox
    material: DebugMaterial = DEBUG_MATERIAL
    rotation: np.ndarray = field(default_factory=lambda: IDENTITY_QUATERNION.copy())

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return self.vertex_count // 3

    def world_positions(self) -> np.ndarray:
        """Positions with the tile rotation applied."""
        if np.allclose(self.rotation, IDENTITY_QUATERNION):
            return self.positions
        return rotate_points(quaternion_to_matrix(self.rotation), self.positions)

    def world_bounds(self) -> BoundingBox:
        """Bounding box of the rotated geometry."""
        if np.allclose(self.rotation, IDENTITY_QUATERNION):
            return self.bounds
        return BoundingBox.from_points(self.world_positions())


@dataclass(slots=True)
class RewriteResult:
    """Tiles rewritten from one model plus the warnings for skipped meshes."""

    tiles: List[TerrainTile] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def check_topology(mesh: MeshNode) -> None:
    """Raise :class:`UnsupportedTopology` unless ``mesh`` is a plain triangle soup."""
    if mesh.index is not None:
        raise UnsupportedTopology(f"Mesh '{mesh.name}' uses indexed geometry")
    if mesh.positions.ndim != 2 or mesh.item_size != 3:
        raise UnsupportedTopology(f"Mesh '{mesh.name}' does not have 3-component positions")
    if mesh.vertex_count % 3 != 0:
        raise UnsupportedTopology(
            f"Mesh '{mesh.name}' has {mesh.vertex_count} vertices, not a multiple of 3"
        )


def rewrite_tile(
    mesh: MeshNode,
    converter: ProjectionConverter,
    warnings: Optional[List[str]] = None,
) -> Optional[TerrainTile]:
    """Rewrite a UTM mesh into an ECEF terrain tile.

    Every vertex goes local -> world (the mesh's world transform) -> ECEF.
    Normals and bounds are then recomputed from the new positions. Meshes with
    an unsupported topology are skipped: a warning is logged, appended to
    ``warnings`` when given, and ``None`` is returned.
    """
    try:
        check_topology(mesh)
    except UnsupportedTopology as exc:
        message = f"Skipping mesh: {exc}. Only non-indexed models with 3-component positions are supported"
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
        return None

    world = transform_points(mesh.world_matrix, mesh.positions)
    positions = converter.forward_many(world)
    normals = vertex_normals(positions)
    bounds = BoundingBox.from_points(positions)
    logger.debug("Rewrote mesh '{}' with {} vertices", mesh.name, positions.shape[0])
    return TerrainTile(name=mesh.name, positions=positions, normals=normals, bounds=bounds)


def rewrite_model(root: SceneNode, converter: ProjectionConverter) -> RewriteResult:
    """Rewrite every mesh of a loaded model, in traversal order."""
    result = RewriteResult()
    for mesh in iter_meshes(root):
        tile = rewrite_tile(mesh, converter, result.warnings)
        if tile is not None:
            result.tiles.append(tile)
    return result


def load_tile_set(
    urls: Sequence[str],
    converter: ProjectionConverter,
    post_rotation: np.ndarray = IDENTITY_QUATERNION,
    fetch: Callable[[str], SceneNode] = fetch_scene,
) -> Tuple[BoundingBox, List[TerrainTile]]:
    """Fetch, rewrite and rotate terrain tiles one after the other.

    Each url is fully processed before the next fetch starts, so tile order and
    the final bounding box are deterministic. Fetch and parse errors propagate
    and no partial tile list is returned.

    Returns:
        Tuple ``(bounds, tiles)`` where ``bounds`` is the union of every tile's
        rotated bounding box.
    """
    rotation = np.asarray(post_rotation, dtype=np.float64).reshape(4)
    bounds = BoundingBox.empty()
    tiles: List[TerrainTile] = []
    for url in urls:
        logger.info("Loading terrain tile {}", url)
        model = fetch(url)
        result = rewrite_model(model, converter)
        for tile in result.tiles:
            tile.rotation = rotation.copy()
            bounds = bounds.union(tile.world_bounds())
            tiles.append(tile)
        logger.info(
            "Terrain tile {} produced {} mesh(es), {} skipped",
            url,
            len(result.tiles),
            len(result.warnings),
        )
    return bounds, tiles
