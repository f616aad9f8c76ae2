"""Per-session state shared by the window, the view and background tasks."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from loguru import logger

from ..config import SceneConfig
from ..io.tiles import BoundingBox, TerrainTile
from ..math.geometry import RayHit, intersect_ray_triangles
from ..math.projection import ProjectionConverter, create_utm_to_ecef_converter
from ..math.rotations import IDENTITY_QUATERNION, ecef_to_gl_quaternion
from .camera_pose import CameraState, GeodeticPose, apply_pose, create_camera
from .drawing_area import DrawingArea, compute_drawing_area, is_pointer_in_area


@dataclass(slots=True)
class AppContext:
    """Owns the camera, drawing area and loaded tiles of one viewing session.

    Created by the entry point and handed to every callback that needs it.
    Only the methods below mutate it.
    """

    config: SceneConfig
    converter: ProjectionConverter
    camera: CameraState
    drawing_area: Optional[DrawingArea] = None
    window_size: Optional[tuple[float, float]] = None
    tiles: List[TerrainTile] = field(default_factory=list)
    bounds: BoundingBox = field(default_factory=BoundingBox.empty)
    overlay_image: Optional[np.ndarray] = None

    @property
    def tile_rotation(self) -> np.ndarray:
        if self.config.tile_rotation == "ecef_to_gl":
            return ecef_to_gl_quaternion()
        return IDENTITY_QUATERNION.copy()

    @property
    def render_origin(self) -> np.ndarray:
        """Point subtracted from world coordinates before single-precision upload."""
        if not self.bounds.is_empty:
            return self.bounds.center
        return self.camera.position.copy()

    def set_pose(self, pose: GeodeticPose) -> CameraState:
        """Apply a new survey pose to the session camera."""
        apply_pose(
            self.camera,
            pose,
            self.config.geocentric_convention,
            position=pose_position(self.config, self.converter, pose),
        )
        if self.window_size is not None:
            self.resize(*self.window_size)
        logger.debug("Camera pose applied: {}", pose.to_dict())
        return self.camera

    def resize(self, window_width: float, window_height: float) -> DrawingArea:
        """Recompute the drawing area for a new window size."""
        self.window_size = (float(window_width), float(window_height))
        self.drawing_area = compute_drawing_area(self.camera.aspect_ratio, window_width, window_height)
        return self.drawing_area

    def set_tiles(self, bounds: BoundingBox, tiles: List[TerrainTile]) -> None:
        self.bounds = bounds
        self.tiles = list(tiles)
        logger.info(
            "Scene holds {} tile(s), {} triangle(s)",
            len(self.tiles),
            sum(tile.triangle_count for tile in self.tiles),
        )

    def pick(self, ndc_x: float, ndc_y: float) -> Optional[RayHit]:
        """Cast a ray through an NDC point and return the closest tile hit.

        Points in the letterbox/pillarbox margins never pick.
        """
        if not is_pointer_in_area(ndc_x, ndc_y):
            return None
        origin, direction = self.camera.ray_from_ndc(ndc_x, ndc_y)
        closest: Optional[RayHit] = None
        for tile in self.tiles:
            hit = intersect_ray_triangles(origin, direction, tile.world_positions())
            if hit is not None and (closest is None or hit.distance < closest.distance):
                closest = hit
        return closest


def pose_position(
    config: SceneConfig,
    converter: ProjectionConverter,
    pose: GeodeticPose,
) -> tuple[float, float, float]:
    """Camera position in ECEF, converting projected poses when configured."""
    if config.pose_is_utm:
        return converter.forward(pose.x, pose.y, pose.z)
    return pose.position


def create_context(config: SceneConfig) -> AppContext:
    """Build a session from ``config`` with the camera already posed."""
    converter = create_utm_to_ecef_converter(config.utm_zone)
    camera = create_camera(
        config.pose,
        config.geocentric_convention,
        near=config.near,
        far=config.far,
        position=pose_position(config, converter, config.pose),
    )
    return AppContext(config=config, converter=converter, camera=camera)
