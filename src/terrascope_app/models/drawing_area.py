"""Aspect-locked drawing area inside a window, and pointer hit-testing."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class DrawingArea:
    """Centred sub-rectangle of a window in pixels (origin at a window corner)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height


def compute_drawing_area(camera_aspect_ratio: float, window_width: float, window_height: float) -> DrawingArea:
    """Largest centred rectangle of ``camera_aspect_ratio`` that fits the window.

    A camera wider than the window keeps the full width and gets equal top and
    bottom margins (letterbox); otherwise the full height is kept with equal
    left and right margins (pillarbox).
    """
    if window_width <= 0 or window_height <= 0:
        raise ValueError(f"Window size must be positive, got {window_width}x{window_height}")
    if camera_aspect_ratio <= 0:
        raise ValueError(f"Camera aspect ratio must be positive, got {camera_aspect_ratio}")

    window_aspect_ratio = window_width / window_height
    if camera_aspect_ratio > window_aspect_ratio:
        width = float(window_width)
        height = width / camera_aspect_ratio
        return DrawingArea(0.0, (window_height - height) / 2.0, width, height)

    height = float(window_height)
    width = height * camera_aspect_ratio
    return DrawingArea((window_width - width) / 2.0, 0.0, width, height)


def apply_to_renderer(area: DrawingArea, device_pixel_ratio: float = 1.0) -> Tuple[int, int, int, int]:
    """Scale ``area`` to physical pixels for ``glViewport``/``glScissor``.

    The area is centred, so the result is valid for both top-left and
    bottom-left framebuffer origins.
    """
    return (
        int(round(area.x * device_pixel_ratio)),
        int(round(area.y * device_pixel_ratio)),
        max(1, int(round(area.width * device_pixel_ratio))),
        max(1, int(round(area.height * device_pixel_ratio))),
    )


def is_pointer_in_area(ndc_x: float, ndc_y: float) -> bool:
    """True when the pointer lies inside the drawing area (NDC in [-1, 1])."""
    return -1.0 <= ndc_x <= 1.0 and -1.0 <= ndc_y <= 1.0


def pointer_to_ndc(pixel_x: float, pixel_y: float, area: DrawingArea) -> Tuple[float, float]:
    """Map window pixel coordinates (y down) to drawing-area NDC (y up)."""
    u = (pixel_x - area.x) / area.width
    v = (pixel_y - area.y) / area.height
    return (u * 2.0) - 1.0, 1.0 - (v * 2.0)
