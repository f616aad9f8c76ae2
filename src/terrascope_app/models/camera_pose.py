"""Camera pose domain models."""
from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from ..errors import DegenerateFieldOfView
from ..math.rotations import camera_rotation


def aspect_ratio_from_fov(hfov_deg: float, vfov_deg: float) -> float:
    """Return the image aspect ratio implied by a horizontal/vertical FOV pair."""
    width = math.tan(math.radians(hfov_deg) / 2.0)
    height = math.tan(math.radians(vfov_deg) / 2.0)
    return width / height


@dataclass(frozen=True, slots=True)
class GeodeticPose:
    """Camera pose as delivered by survey metadata.

    Position is projected (UTM) or geocentric depending on the producer;
    angles are in degrees.
    """

    x: float  # meters
    y: float  # meters
    z: float  # meters
    yaw: float  # degrees
    pitch: float  # degrees
    roll: float  # degrees
    hfov: float  # degrees
    vfov: float  # degrees

    FIELDS = ("x", "y", "z", "yaw", "pitch", "roll", "hfov", "vfov")

    @classmethod
    def from_mapping(cls, record: Mapping[str, Any]) -> "GeodeticPose":
        """Build a pose from a metadata record keyed by the field names."""
        missing = [name for name in cls.FIELDS if name not in record]
        if missing:
            raise KeyError(f"Pose record is missing fields: {', '.join(missing)}")
        return cls(**{name: float(record[name]) for name in cls.FIELDS})

    def to_dict(self) -> Dict[str, float]:
        """Return a serialisable mapping."""
        return {name: getattr(self, name) for name in self.FIELDS}

    @property
    def position(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.z

    def validate(self) -> "GeodeticPose":
        """Raise :class:`DegenerateFieldOfView` unless both FOVs are in (0, 180)."""
        for name in ("hfov", "vfov"):
            value = getattr(self, name)
            if not 0.0 < value < 180.0:
                raise DegenerateFieldOfView(f"{name} must lie in (0, 180) degrees, got {value}")
        return self


@dataclass(slots=True)
class CameraState:
    """Render camera derived from a :class:`GeodeticPose`.

    The rotation maps camera-local axes (looking down -Z, +Y up) to world
    axes. The aspect ratio is always derived from the two fields of view.
    """

    position: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3, dtype=np.float64))
    hfov_deg: float = 60.0
    vfov_deg: float = 45.0
    near: float = 1.0
    far: float = 4000.0

    @property
    def aspect_ratio(self) -> float:
        return aspect_ratio_from_fov(self.hfov_deg, self.vfov_deg)

    def view_matrix(self, origin: Optional[np.ndarray] = None) -> np.ndarray:
        """World-to-camera 4x4 transform.

        ``origin`` shifts the world so large geocentric coordinates can be
        rendered in single precision relative to a nearby point.
        """
        position = self.position
        if origin is not None:
            position = position - np.asarray(origin, dtype=np.float64)
        matrix = np.eye(4, dtype=np.float64)
        matrix[:3, :3] = self.rotation.T
        matrix[:3, 3] = -(self.rotation.T @ position)
        return matrix

    def projection_matrix(self) -> np.ndarray:
        """OpenGL perspective projection for the vertical FOV and aspect ratio."""
        f = 1.0 / math.tan(math.radians(self.vfov_deg) / 2.0)
        near, far = self.near, self.far
        matrix = np.zeros((4, 4), dtype=np.float64)
        matrix[0, 0] = f / self.aspect_ratio
        matrix[1, 1] = f
        matrix[2, 2] = (far + near) / (near - far)
        matrix[2, 3] = (2.0 * far * near) / (near - far)
        matrix[3, 2] = -1.0
        return matrix

    def ray_from_ndc(self, ndc_x: float, ndc_y: float) -> Tuple[np.ndarray, np.ndarray]:
        """Return a world-space ``(origin, unit_direction)`` through an NDC point."""
        tan_half_y = math.tan(math.radians(self.vfov_deg) / 2.0)
        tan_half_x = tan_half_y * self.aspect_ratio
        local = np.array([ndc_x * tan_half_x, ndc_y * tan_half_y, -1.0], dtype=np.float64)
        direction = self.rotation @ local
        direction /= np.linalg.norm(direction)
        return self.position.copy(), direction


def apply_pose(
    camera: CameraState,
    pose: GeodeticPose,
    use_geocentric_convention: bool = True,
    position: Optional[Tuple[float, float, float]] = None,
) -> CameraState:
    """Update ``camera`` in place from ``pose``.

    ``position`` overrides the pose position, e.g. after converting a
    projected position to ECEF. Every value is computed before any field is
    written so a failure leaves the camera untouched.
    """
    new_position = np.array(pose.position if position is None else position, dtype=np.float64)
    new_rotation = camera_rotation(
        math.radians(pose.yaw),
        math.radians(pose.pitch),
        math.radians(pose.roll),
        use_geocentric_convention,
    )
    hfov = float(pose.hfov)
    vfov = float(pose.vfov)

    camera.position = new_position
    camera.rotation = new_rotation
    camera.hfov_deg = hfov
    camera.vfov_deg = vfov
    return camera


def create_camera(
    pose: GeodeticPose,
    use_geocentric_convention: bool = True,
    near: float = 1.0,
    far: float = 4000.0,
    position: Optional[Tuple[float, float, float]] = None,
) -> CameraState:
    """Return a fully initialised camera for ``pose``."""
    camera = CameraState(near=near, far=far)
    return apply_pose(camera, pose, use_geocentric_convention, position=position)
