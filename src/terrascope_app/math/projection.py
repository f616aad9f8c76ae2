"""UTM to geocentric (ECEF) conversion on the WGS84 datum."""
from __future__ import annotations

import functools
from typing import Tuple

import numpy as np
from pyproj import CRS, Transformer

from ..errors import InvalidZone

WGS84_ECEF = CRS.from_epsg(4978)
UTM_NORTH_EPSG_BASE = 32600


@functools.lru_cache(maxsize=8)
def _utm_to_ecef_transformer(zone: int) -> Transformer:
    utm = CRS.from_epsg(UTM_NORTH_EPSG_BASE + zone).to_3d()
    return Transformer.from_crs(utm, WGS84_ECEF, always_xy=True)


def _validate_zone(zone: object) -> int:
    if isinstance(zone, bool) or not isinstance(zone, (int, np.integer)):
        raise InvalidZone(zone)
    if not 1 <= int(zone) <= 60:
        raise InvalidZone(zone)
    return int(zone)


class ProjectionConverter:
    """Maps UTM easting/northing/height (northern hemisphere) to ECEF metres.

    Instances are immutable and can be shared freely; the underlying pyproj
    transformer is cached per zone.
    """

    __slots__ = ("_zone", "_transformer")

    def __init__(self, zone: int) -> None:
        self._zone = _validate_zone(zone)
        self._transformer = _utm_to_ecef_transformer(self._zone)

    @property
    def zone(self) -> int:
        return self._zone

    def forward(self, easting: float, northing: float, height: float) -> Tuple[float, float, float]:
        """Convert a single UTM coordinate to ECEF."""
        x, y, z = self._transformer.transform(easting, northing, height)
        return float(x), float(y), float(z)

    def forward_many(self, points: np.ndarray) -> np.ndarray:
        """Convert an ``(N, 3)`` array of UTM coordinates to ECEF.

        Returns a new ``float64`` array; the input is left untouched.
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if pts.shape[0] == 0:
            return np.empty((0, 3), dtype=np.float64)
        x, y, z = self._transformer.transform(pts[:, 0], pts[:, 1], pts[:, 2])
        return np.column_stack([x, y, z]).astype(np.float64, copy=False)

    def __repr__(self) -> str:
        return f"ProjectionConverter(zone={self._zone})"


def create_utm_to_ecef_converter(zone: int) -> ProjectionConverter:
    """Create a converter between UTM ``zone`` and ECEF."""
    return ProjectionConverter(zone)
