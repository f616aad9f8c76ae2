import math

import numpy as np
import pytest

from terrascope_app.errors import InvalidZone
from terrascope_app.math.projection import ProjectionConverter, create_utm_to_ecef_converter

WGS84_A = 6378137.0


@pytest.mark.parametrize("zone", [0, 61, -3, 33.0, True, "33", None])
def test_invalid_zone_is_rejected(zone):
    with pytest.raises(InvalidZone):
        ProjectionConverter(zone)


def test_invalid_zone_is_a_value_error():
    with pytest.raises(ValueError):
        create_utm_to_ecef_converter(99)


@pytest.mark.parametrize("zone, central_meridian_deg", [(1, -177.0), (31, 3.0), (33, 15.0), (60, 177.0)])
def test_central_meridian_on_equator_maps_to_equatorial_radius(zone, central_meridian_deg):
    converter = ProjectionConverter(zone)
    x, y, z = converter.forward(500000.0, 0.0, 0.0)
    lon = math.radians(central_meridian_deg)
    assert math.isclose(x, WGS84_A * math.cos(lon), abs_tol=1e-3)
    assert math.isclose(y, WGS84_A * math.sin(lon), abs_tol=1e-3)
    assert math.isclose(z, 0.0, abs_tol=1e-3)


def test_height_is_ellipsoidal():
    converter = ProjectionConverter(33)
    x0, y0, z0 = converter.forward(500000.0, 0.0, 0.0)
    x1, y1, z1 = converter.forward(500000.0, 0.0, 250.0)
    radial = math.hypot(x1, y1) - math.hypot(x0, y0)
    assert math.isclose(radial, 250.0, abs_tol=1e-3)
    assert math.isclose(z1, z0, abs_tol=1e-3)


def test_northern_point_lies_on_ellipsoid_shell():
    converter = ProjectionConverter(33)
    x, y, z = converter.forward(520000.0, 5305000.0, 300.0)
    radius = math.sqrt(x * x + y * y + z * z)
    assert z > 0.0
    assert 6.35e6 < radius < 6.38e6


def test_forward_many_matches_forward():
    converter = ProjectionConverter(33)
    points = np.array(
        [
            [500000.0, 0.0, 0.0],
            [520417.0, 5305120.0, 312.5],
            [479800.0, 5290010.0, 1520.0],
        ]
    )
    converted = converter.forward_many(points)
    assert converted.shape == (3, 3)
    assert converted.dtype == np.float64
    for row, point in zip(converted, points):
        np.testing.assert_allclose(row, converter.forward(*point), atol=1e-6)


def test_forward_many_handles_empty_input():
    converted = ProjectionConverter(33).forward_many(np.empty((0, 3)))
    assert converted.shape == (0, 3)


def test_converter_reports_zone():
    converter = create_utm_to_ecef_converter(33)
    assert converter.zone == 33
    assert "33" in repr(converter)
