"""Model and image fetching.

Resources are addressed by local path or ``http(s)`` URL. Models are parsed
with trimesh (Collada through pycollada, glTF, OBJ, PLY, ...) and handed to
the rest of the pipeline as a :mod:`scene_nodes` tree.
"""
from __future__ import annotations

import io
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import cv2
import numpy as np
import requests
import trimesh
from loguru import logger

from ..errors import FetchFailure, ParseFailure
from ..models.scene_nodes import GroupNode, MeshNode, OtherNode, SceneNode

REQUEST_TIMEOUT_S = 30.0


def _is_remote(url: str) -> bool:
    return urlparse(url).scheme in ("http", "https")


def _file_type(url: str) -> str:
    path = urlparse(url).path if _is_remote(url) else url
    return PurePosixPath(path).suffix.lstrip(".").lower()


def fetch_bytes(url: str, timeout: float = REQUEST_TIMEOUT_S) -> bytes:
    """Read a local file or download a remote resource."""
    if _is_remote(url):
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchFailure(url, str(exc)) from exc
        data = response.content
    else:
        try:
            data = Path(url).read_bytes()
        except OSError as exc:
            raise FetchFailure(url, str(exc)) from exc
    logger.debug("{} has loaded {} bytes", url, len(data))
    return data


def triangle_soup(mesh: trimesh.Trimesh) -> np.ndarray:
    """Expand an indexed trimesh into one vertex triple per face."""
    vertices = np.asarray(mesh.vertices, dtype=np.float64)
    faces = np.asarray(mesh.faces, dtype=np.int64)
    return vertices[faces].reshape(-1, 3)


def scene_from_trimesh(scene: trimesh.Scene, name: str = "model") -> GroupNode:
    """Convert a trimesh scene into a group of nodes with world transforms."""
    children = []
    for node_name in scene.graph.nodes_geometry:
        transform, geometry_name = scene.graph[node_name]
        geometry = scene.geometry[geometry_name]
        if isinstance(geometry, trimesh.Trimesh):
            children.append(
                MeshNode(
                    name=str(node_name),
                    positions=triangle_soup(geometry),
                    world_matrix=np.asarray(transform, dtype=np.float64),
                )
            )
        else:
            children.append(OtherNode(name=str(node_name), kind=type(geometry).__name__))
    return GroupNode(name=name, children=tuple(children))


def fetch_scene(url: str, file_type: Optional[str] = None) -> SceneNode:
    """Fetch and parse a model into a scene tree.

    Raises:
        FetchFailure: If the resource cannot be read.
        ParseFailure: If trimesh cannot decode it.
    """
    data = fetch_bytes(url)
    file_type = file_type or _file_type(url)
    try:
        loaded = trimesh.load(io.BytesIO(data), file_type=file_type, force="scene")
    except Exception as exc:  # noqa: BLE001
        raise ParseFailure(url, f"{type(exc).__name__}: {exc}") from exc
    if not isinstance(loaded, trimesh.Scene):
        raise ParseFailure(url, f"expected a scene, got {type(loaded).__name__}")
    root = scene_from_trimesh(loaded, name=PurePosixPath(urlparse(url).path).name or url)
    logger.debug("Parsed model {} with {} node(s)", url, len(root.children))
    return root


def fetch_image(url: str) -> np.ndarray:
    """Fetch an image as an RGB uint8 array."""
    data = fetch_bytes(url)
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise ParseFailure(url, "OpenCV could not decode the image")
    image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    logger.debug("Loaded image {} with shape {}", url, image.shape)
    return image
