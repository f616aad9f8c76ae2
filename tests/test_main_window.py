import os

import pytest

pytest.importorskip("OpenGL.GL")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication  # noqa: E402

from terrascope_app.config import SceneConfig  # noqa: E402
from terrascope_app.models.camera_pose import GeodeticPose  # noqa: E402
from terrascope_app.models.session import create_context  # noqa: E402
from terrascope_app.ui.main_window import MainWindow  # noqa: E402
from terrascope_app.viewer.terrain_widget import TerrainViewWidget  # noqa: E402

LEVEL_POSE = GeodeticPose(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 40.0, 30.0)


@pytest.fixture(scope="module")
def qapp():
    app = QApplication.instance() or QApplication(["terrascope-tests"])
    yield app


def test_replacing_the_scene_releases_the_old_overlay_texture(qapp, monkeypatch):
    released = []
    monkeypatch.setattr(
        TerrainViewWidget,
        "release_overlay_texture",
        lambda self: released.append(self),
    )
    window = MainWindow(create_context(SceneConfig(pose=LEVEL_POSE)))
    old_viewer = window.viewer

    new_context = create_context(SceneConfig(pose=LEVEL_POSE, show_tile_boxes=True))
    window._replace_context(new_context)

    assert released == [old_viewer]
    assert window.viewer is not old_viewer
    assert window.viewer.context is new_context
    assert window._boxes_action.isChecked()
