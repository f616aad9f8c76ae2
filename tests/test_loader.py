import cv2
import numpy as np
import pytest
import requests
import trimesh

from terrascope_app.errors import FetchFailure, ParseFailure
from terrascope_app.io import loader
from terrascope_app.models.scene_nodes import MeshNode, OtherNode, iter_meshes


class FakeResponse:
    def __init__(self, content=b"", status_error=None):
        self.content = content
        self._status_error = status_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error


def test_file_type_from_path_and_url():
    assert loader._file_type("/data/tiles/Tile_01.DAE") == "dae"
    assert loader._file_type("https://example.org/tiles/a.glb?token=1") == "glb"
    assert loader._file_type("no_suffix") == ""


def test_triangle_soup_expands_faces():
    mesh = trimesh.creation.box()
    soup = loader.triangle_soup(mesh)
    assert soup.shape == (len(mesh.faces) * 3, 3)
    np.testing.assert_allclose(soup[:3], mesh.vertices[mesh.faces[0]])


def test_scene_from_trimesh_keeps_world_transforms():
    transform = np.eye(4)
    transform[:3, 3] = [500000.0, 5300000.0, 200.0]
    scene = trimesh.Scene()
    scene.add_geometry(trimesh.creation.box(), node_name="terrain", transform=transform)
    scene.add_geometry(trimesh.PointCloud(np.zeros((4, 3))), node_name="markers")

    root = loader.scene_from_trimesh(scene, name="tile.dae")
    assert root.name == "tile.dae"
    meshes = list(iter_meshes(root))
    assert len(meshes) == 1
    assert isinstance(meshes[0], MeshNode)
    assert meshes[0].name == "terrain"
    assert meshes[0].index is None
    assert meshes[0].vertex_count == 36
    np.testing.assert_allclose(meshes[0].world_matrix, transform)
    others = [child for child in root.children if isinstance(child, OtherNode)]
    assert [other.kind for other in others] == ["PointCloud"]


def test_fetch_scene_reads_local_model(tmp_path):
    path = tmp_path / "tile.ply"
    path.write_bytes(trimesh.creation.box().export(file_type="ply"))

    root = loader.fetch_scene(str(path))
    meshes = list(iter_meshes(root))
    assert root.name == "tile.ply"
    assert len(meshes) == 1
    assert meshes[0].vertex_count == 36
    assert np.all(np.abs(meshes[0].positions) <= 0.5 + 1e-9)


def test_fetch_scene_missing_file_is_fetch_failure(tmp_path):
    missing = str(tmp_path / "missing.dae")
    with pytest.raises(FetchFailure) as excinfo:
        loader.fetch_scene(missing)
    assert excinfo.value.url == missing


def test_fetch_scene_garbage_is_parse_failure(tmp_path):
    path = tmp_path / "tile.unknownformat"
    path.write_bytes(b"\x00\x01 definitely not a model")
    with pytest.raises(ParseFailure):
        loader.fetch_scene(str(path))


def test_fetch_image_returns_rgb(tmp_path):
    bgr = np.zeros((4, 6, 3), dtype=np.uint8)
    bgr[..., 0] = 255
    ok, encoded = cv2.imencode(".png", bgr)
    assert ok
    path = tmp_path / "overlay.png"
    path.write_bytes(encoded.tobytes())

    image = loader.fetch_image(str(path))
    assert image.shape == (4, 6, 3)
    assert image.dtype == np.uint8
    assert np.all(image[..., 2] == 255)
    assert np.all(image[..., 0] == 0)


def test_fetch_image_undecodable_is_parse_failure(tmp_path):
    path = tmp_path / "overlay.png"
    path.write_bytes(b"not an image")
    with pytest.raises(ParseFailure):
        loader.fetch_image(str(path))


def test_remote_fetch_uses_requests(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(b"payload")

    monkeypatch.setattr(loader.requests, "get", fake_get)
    assert loader.fetch_bytes("https://example.org/a.dae") == b"payload"
    assert calls == [("https://example.org/a.dae", loader.REQUEST_TIMEOUT_S)]


def test_remote_http_error_is_fetch_failure(monkeypatch):
    def fake_get(url, timeout):
        return FakeResponse(status_error=requests.HTTPError("404 Client Error"))

    monkeypatch.setattr(loader.requests, "get", fake_get)
    with pytest.raises(FetchFailure, match="404"):
        loader.fetch_bytes("http://example.org/missing.dae")


def test_remote_connection_error_is_fetch_failure(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(loader.requests, "get", fake_get)
    with pytest.raises(FetchFailure, match="connection refused"):
        loader.fetch_bytes("http://example.org/a.dae")
