"""Input/output helpers for terrain models and overlay images."""

from .loader import fetch_image, fetch_scene
from .tiles import BoundingBox, TerrainTile, load_tile_set, rewrite_model, rewrite_tile

__all__ = [
    "BoundingBox",
    "TerrainTile",
    "fetch_image",
    "fetch_scene",
    "load_tile_set",
    "rewrite_model",
    "rewrite_tile",
]
