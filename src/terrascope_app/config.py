"""Scene configuration loaded from JSON."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import json
import math
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

from .errors import ConfigError
from .models.camera_pose import GeodeticPose

TILE_ROTATIONS = ("identity", "ecef_to_gl")


# Survey pose of the bundled demo tile (ECEF position, attitude in degrees).
DEMO_POSE = GeodeticPose(
    x=3427185.2975538,
    y=938976.268528,
    z=5280812.4649243,
    yaw=math.degrees(-0.8009253),
    pitch=math.degrees(0.681823),
    roll=math.degrees(2.6025103),
    hfov=40.0,
    vfov=30.0,
)


@dataclass(frozen=True, slots=True)
class SceneConfig:
    """Everything needed to build a viewing session."""

    utm_zone: int = 33
    tiles: Tuple[str, ...] = ()
    pose: GeodeticPose = DEMO_POSE
    pose_is_utm: bool = False
    geocentric_convention: bool = True
    tile_rotation: str = "identity"
    overlay_image: Optional[str] = None
    near: float = 1.0
    far: float = 4000.0
    clear_color: Tuple[float, float, float] = (0.0, 0.0, 0.2)
    show_tile_boxes: bool = False
    source_path: Optional[Path] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base_dir: Optional[Path] = None) -> "SceneConfig":
        """Validate a decoded JSON mapping.

        Relative tile and image paths resolve against ``base_dir``.
        """
        if not isinstance(data, Mapping):
            raise ConfigError("Scene configuration must be a JSON object")
        known = {
            "utm_zone",
            "tiles",
            "pose",
            "pose_is_utm",
            "geocentric_convention",
            "tile_rotation",
            "overlay_image",
            "near",
            "far",
            "clear_color",
            "show_tile_boxes",
        }
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {}
        if "utm_zone" in data:
            zone = data["utm_zone"]
            if isinstance(zone, bool) or not isinstance(zone, int) or not 1 <= zone <= 60:
                raise ConfigError(f"utm_zone must be an integer in [1, 60], got {zone!r}")
            kwargs["utm_zone"] = zone
        if "tiles" in data:
            tiles = data["tiles"]
            if not isinstance(tiles, list) or not all(isinstance(t, str) for t in tiles):
                raise ConfigError("tiles must be a list of paths or URLs")
            kwargs["tiles"] = tuple(_resolve(t, base_dir) for t in tiles)
        if "pose" in data:
            try:
                kwargs["pose"] = GeodeticPose.from_mapping(data["pose"]).validate()
            except (KeyError, TypeError, ValueError) as exc:
                raise ConfigError(f"Invalid pose: {exc}") from exc
        for key in ("pose_is_utm", "geocentric_convention", "show_tile_boxes"):
            if key in data:
                if not isinstance(data[key], bool):
                    raise ConfigError(f"{key} must be true or false")
                kwargs[key] = data[key]
        if "tile_rotation" in data:
            if data["tile_rotation"] not in TILE_ROTATIONS:
                raise ConfigError(f"tile_rotation must be one of {', '.join(TILE_ROTATIONS)}")
            kwargs["tile_rotation"] = data["tile_rotation"]
        if data.get("overlay_image") is not None:
            kwargs["overlay_image"] = _resolve(str(data["overlay_image"]), base_dir)
        for key in ("near", "far"):
            if key in data:
                try:
                    kwargs[key] = float(data[key])
                except (TypeError, ValueError) as exc:
                    raise ConfigError(f"{key} must be a number") from exc
        if "clear_color" in data:
            color = data["clear_color"]
            if not isinstance(color, list) or len(color) != 3:
                raise ConfigError("clear_color must be a list of three numbers")
            kwargs["clear_color"] = tuple(float(c) for c in color)

        config = cls(**kwargs)
        if not 0.0 < config.near < config.far:
            raise ConfigError(f"Clip planes must satisfy 0 < near < far, got {config.near}, {config.far}")
        return config

    @classmethod
    def from_file(cls, path: Path) -> "SceneConfig":
        """Load a scene configuration file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Unable to read scene configuration {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Scene configuration {path} is not valid JSON: {exc}") from exc
        config = cls.from_dict(data, base_dir=path.parent)
        return replace(config, source_path=path)


def _resolve(location: str, base_dir: Optional[Path]) -> str:
    if urlparse(location).scheme in ("http", "https") or base_dir is None:
        return location
    path = Path(location)
    if path.is_absolute():
        return location
    return str(base_dir / path)


def load_pose(path: Path) -> GeodeticPose:
    """Read a single pose record (``x, y, z, yaw, pitch, roll, hfov, vfov``)."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GeodeticPose.from_mapping(data).validate()
    except OSError as exc:
        raise ConfigError(f"Unable to read pose {path}: {exc}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid pose {path}: {exc}") from exc
