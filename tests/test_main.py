from pathlib import Path

import pytest

pytest.importorskip("OpenGL.GL")

from terrascope_app.main import build_parser, main  # noqa: E402


def test_parser_accepts_optional_scene_and_verbose_flag():
    args = build_parser().parse_args(["scene.json", "-v"])
    assert args.scene == Path("scene.json")
    assert args.verbose
    args = build_parser().parse_args([])
    assert args.scene is None
    assert not args.verbose


def test_invalid_scene_exits_before_starting_the_gui(tmp_path):
    assert main(["terrascope", str(tmp_path / "missing.json")]) == 2
    bad_zone = tmp_path / "scene.json"
    bad_zone.write_text('{"utm_zone": 99}', encoding="utf-8")
    assert main(["terrascope", str(bad_zone)]) == 2
