import math

import pytest

from terrascope_app.models.camera_pose import aspect_ratio_from_fov
from terrascope_app.models.drawing_area import (
    DrawingArea,
    apply_to_renderer,
    compute_drawing_area,
    is_pointer_in_area,
    pointer_to_ndc,
)


def test_pillarbox_for_narrow_camera():
    aspect = aspect_ratio_from_fov(40.0, 30.0)
    area = compute_drawing_area(aspect, 1920, 1080)
    assert area.y == 0.0
    assert area.height == 1080.0
    assert math.isclose(area.width, 1080.0 * aspect, rel_tol=1e-12)
    assert math.isclose(area.width, 1467.0, abs_tol=0.5)
    assert math.isclose(area.x, (1920.0 - area.width) / 2.0, rel_tol=1e-12)
    assert math.isclose(area.x, 226.5, abs_tol=0.5)


def test_letterbox_for_wide_camera():
    area = compute_drawing_area(2.0, 800, 600)
    assert area.x == 0.0
    assert area.width == 800.0
    assert area.height == 400.0
    assert area.y == 100.0


def test_matching_aspect_fills_window():
    area = compute_drawing_area(4.0 / 3.0, 800, 600)
    assert area.as_tuple() == (0.0, 0.0, 800.0, 600.0)


@pytest.mark.parametrize("aspect", [0.5, 1.0, 1.35837, 16.0 / 9.0, 3.0])
@pytest.mark.parametrize("size", [(640, 480), (1920, 1080), (300, 900), (1, 1)])
def test_area_is_centred_fitted_and_aspect_locked(aspect, size):
    width, height = size
    area = compute_drawing_area(aspect, width, height)
    assert 0.0 <= area.x and 0.0 <= area.y
    assert area.width <= width + 1e-9
    assert area.height <= height + 1e-9
    assert math.isclose(area.aspect_ratio, aspect, rel_tol=1e-9)
    assert math.isclose(area.x * 2.0 + area.width, width, rel_tol=1e-9)
    assert math.isclose(area.y * 2.0 + area.height, height, rel_tol=1e-9)
    assert math.isclose(area.width, width, rel_tol=1e-9) or math.isclose(area.height, height, rel_tol=1e-9)


@pytest.mark.parametrize("args", [(1.0, 0, 100), (1.0, 100, 0), (0.0, 100, 100), (-1.0, 100, 100)])
def test_invalid_inputs_are_rejected(args):
    with pytest.raises(ValueError):
        compute_drawing_area(*args)


def test_apply_to_renderer_scales_by_device_pixel_ratio():
    area = DrawingArea(226.5, 0.0, 1467.0, 1080.0)
    assert apply_to_renderer(area) == (226, 0, 1467, 1080)
    assert apply_to_renderer(area, 2.0) == (453, 0, 2934, 2160)
    assert apply_to_renderer(DrawingArea(0.0, 0.0, 0.1, 0.1)) == (0, 0, 1, 1)


def test_pointer_to_ndc_maps_corners_and_centre():
    area = DrawingArea(100.0, 50.0, 400.0, 200.0)
    assert pointer_to_ndc(100.0, 50.0, area) == (-1.0, 1.0)
    assert pointer_to_ndc(500.0, 250.0, area) == (1.0, -1.0)
    assert pointer_to_ndc(300.0, 150.0, area) == (0.0, 0.0)


def test_pointer_in_margin_is_outside_area():
    area = DrawingArea(100.0, 0.0, 400.0, 300.0)
    assert is_pointer_in_area(*pointer_to_ndc(300.0, 150.0, area))
    assert not is_pointer_in_area(*pointer_to_ndc(50.0, 150.0, area))
    assert not is_pointer_in_area(*pointer_to_ndc(550.0, 150.0, area))
    assert is_pointer_in_area(1.0, -1.0)
    assert not is_pointer_in_area(0.0, 1.0001)
