"""OpenGL view of rewritten terrain tiles through a surveyed camera."""
from __future__ import annotations

import time
from typing import List, Optional, Tuple

import numpy as np
from loguru import logger
from OpenGL.GL import (
    GL_COLOR_BUFFER_BIT,
    GL_DEPTH_BUFFER_BIT,
    GL_DEPTH_TEST,
    GL_FILL,
    GL_FLOAT,
    GL_FRONT_AND_BACK,
    GL_LINE,
    GL_LINEAR,
    GL_LINES,
    GL_MODELVIEW,
    GL_PROJECTION,
    GL_QUADS,
    GL_RGB,
    GL_SCISSOR_TEST,
    GL_TEXTURE_2D,
    GL_TEXTURE_MAG_FILTER,
    GL_TEXTURE_MIN_FILTER,
    GL_TRIANGLES,
    GL_UNPACK_ALIGNMENT,
    GL_UNSIGNED_BYTE,
    GL_VERTEX_ARRAY,
    glBegin,
    glBindTexture,
    glClear,
    glClearColor,
    glColor3f,
    glDeleteTextures,
    glDepthMask,
    glDisable,
    glDisableClientState,
    glDrawArrays,
    glEnable,
    glEnableClientState,
    glEnd,
    glGenTextures,
    glLineWidth,
    glLoadIdentity,
    glLoadMatrixd,
    glMatrixMode,
    glPixelStorei,
    glPolygonMode,
    glScissor,
    glTexCoord2f,
    glTexImage2D,
    glTexParameteri,
    glVertex3f,
    glVertexPointer,
    glViewport,
)
from PyQt6.QtCore import QPointF, Qt, pyqtSignal
from PyQt6.QtGui import QMouseEvent
from PyQt6.QtOpenGLWidgets import QOpenGLWidget

from ..io.tiles import DebugMaterial
from ..math.geometry import RayHit
from ..models.drawing_area import DrawingArea, apply_to_renderer, is_pointer_in_area, pointer_to_ndc
from ..models.session import AppContext

NORMAL_ARROW_LENGTH_M = 100.0
BOX_COLOR = (1.0, 1.0, 0.0)
ARROW_COLOR = (0.2, 1.0, 0.2)

_BOX_EDGES = (
    (0, 1), (2, 3), (4, 5), (6, 7),
    (0, 2), (1, 3), (4, 6), (5, 7),
    (0, 4), (1, 5), (2, 6), (3, 7),
)


class TerrainViewWidget(QOpenGLWidget):
    """Renders the session's tiles inside an aspect-locked drawing area.

    Everything outside the drawing area is scissored away, so the camera image
    keeps its field of view at any window size.
    """

    pointerPicked = pyqtSignal(object)  # RayHit or None
    framesPerSecond = pyqtSignal(float)

    def __init__(self, context: AppContext, parent=None) -> None:
        super().__init__(parent)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(True)

        self._context = context
        self._tile_buffers: List[Tuple[np.ndarray, int, DebugMaterial]] = []
        self._box_corners: List[np.ndarray] = []
        self._origin = np.zeros(3, dtype=np.float64)

        self._overlay: Optional[np.ndarray] = None
        self._texture_id: Optional[int] = None
        self._pending_upload = False

        self._pointer_ndc: Optional[Tuple[float, float]] = None
        self._show_normal = False
        self._show_tile_boxes = context.config.show_tile_boxes
        self._hit: Optional[RayHit] = None

        self._frame_count = 0
        self._frame_clock = time.perf_counter()

    # ------------------------------------------------------------------
    @property
    def context(self) -> AppContext:
        return self._context

    def tiles_changed(self) -> None:
        """Rebuild vertex buffers after the session's tiles changed."""
        self._origin = self._context.render_origin
        self._tile_buffers = []
        self._box_corners = []
        for tile in self._context.tiles:
            vertices = np.ascontiguousarray(tile.world_positions() - self._origin, dtype=np.float32)
            self._tile_buffers.append((vertices, tile.vertex_count, tile.material))
            self._box_corners.append(tile.world_bounds().corners() - self._origin)
        self._hit = None
        logger.debug("Uploaded {} tile buffer(s) relative to origin {}", len(self._tile_buffers), self._origin)
        self.update()

    def pose_changed(self) -> None:
        self._context.resize(self.width(), self.height())
        self._refresh_pick()
        self.update()

    def set_overlay_image(self, image: Optional[np.ndarray]) -> None:
        if image is not None:
            if image.dtype != np.uint8 or image.ndim != 3 or image.shape[2] != 3:
                raise ValueError("Overlay image must be uint8 RGB data")
            image = np.ascontiguousarray(image)
        self._overlay = image
        self._context.overlay_image = image
        self._pending_upload = image is not None
        self.update()

    def set_show_normal(self, enabled: bool) -> None:
        self._show_normal = bool(enabled)
        self._refresh_pick()
        self.update()

    def show_normal(self) -> bool:
        return self._show_normal

    def set_show_tile_boxes(self, enabled: bool) -> None:
        self._show_tile_boxes = bool(enabled)
        self.update()

    # ------------------------------------------------------------------
    def initializeGL(self) -> None:  # noqa: N802
        glClearColor(*self._context.config.clear_color, 1.0)
        glEnable(GL_DEPTH_TEST)

    def resizeGL(self, width: int, height: int) -> None:  # noqa: N802
        area = self._context.resize(max(1, width), max(1, height))
        logger.debug("Drawing area {} for window {}x{}", area.as_tuple(), width, height)

    def paintGL(self) -> None:  # noqa: N802
        area = self._context.drawing_area
        if area is None:
            area = self._context.resize(max(1, self.width()), max(1, self.height()))
        self._apply_drawing_area(area)
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)

        if self._overlay is not None:
            if self._pending_upload:
                self._upload_texture()
            self._draw_overlay()

        camera = self._context.camera
        glMatrixMode(GL_PROJECTION)
        glLoadMatrixd(np.ascontiguousarray(camera.projection_matrix().T))
        glMatrixMode(GL_MODELVIEW)
        glLoadMatrixd(np.ascontiguousarray(camera.view_matrix(self._origin).T))

        self._draw_tiles()
        if self._show_tile_boxes:
            self._draw_boxes()
        if self._show_normal and self._hit is not None:
            self._draw_normal_arrow(self._hit)

        glDisable(GL_SCISSOR_TEST)
        self._count_frame()

    def _apply_drawing_area(self, area: DrawingArea) -> None:
        x, y, width, height = apply_to_renderer(area, self.devicePixelRatioF())
        glViewport(x, y, width, height)
        glEnable(GL_SCISSOR_TEST)
        glScissor(x, y, width, height)

    # ------------------------------------------------------------------
    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        self._update_pointer(event.position())
        super().mouseMoveEvent(event)

    def leaveEvent(self, event) -> None:  # noqa: N802
        self._pointer_ndc = None
        self._hit = None
        self.update()
        super().leaveEvent(event)

    def _update_pointer(self, pos: QPointF) -> None:
        area = self._context.drawing_area
        if area is None:
            return
        self._pointer_ndc = pointer_to_ndc(pos.x(), pos.y(), area)
        if self._show_normal:
            self._refresh_pick()
            self.update()

    def _refresh_pick(self) -> None:
        ndc = self._pointer_ndc
        if not self._show_normal or ndc is None or not is_pointer_in_area(*ndc):
            self._hit = None
        else:
            self._hit = self._context.pick(*ndc)
        self.pointerPicked.emit(self._hit)

    # ------------------------------------------------------------------
    def _draw_tiles(self) -> None:
        glEnableClientState(GL_VERTEX_ARRAY)
        for vertices, count, material in self._tile_buffers:
            glPolygonMode(GL_FRONT_AND_BACK, GL_LINE if material.wireframe else GL_FILL)
            glColor3f(*material.color)
            glVertexPointer(3, GL_FLOAT, 0, vertices)
            glDrawArrays(GL_TRIANGLES, 0, count)
        glDisableClientState(GL_VERTEX_ARRAY)
        glPolygonMode(GL_FRONT_AND_BACK, GL_FILL)

    def _draw_boxes(self) -> None:
        glColor3f(*BOX_COLOR)
        glBegin(GL_LINES)
        for corners in self._box_corners:
            for a, b in _BOX_EDGES:
                glVertex3f(*corners[a])
                glVertex3f(*corners[b])
        glEnd()

    def _draw_normal_arrow(self, hit: RayHit) -> None:
        start = hit.point - self._origin
        end = start + hit.normal * NORMAL_ARROW_LENGTH_M
        glLineWidth(2.0)
        glColor3f(*ARROW_COLOR)
        glBegin(GL_LINES)
        glVertex3f(*start)
        glVertex3f(*end)
        glEnd()
        glLineWidth(1.0)

    def _draw_overlay(self) -> None:
        """Full drawing-area textured quad behind the terrain."""
        glMatrixMode(GL_PROJECTION)
        glLoadIdentity()
        glMatrixMode(GL_MODELVIEW)
        glLoadIdentity()
        glDisable(GL_DEPTH_TEST)
        glDepthMask(False)
        glColor3f(1.0, 1.0, 1.0)
        glEnable(GL_TEXTURE_2D)
        glBindTexture(GL_TEXTURE_2D, self._texture_id or 0)
        glBegin(GL_QUADS)
        # Image rows run top to bottom.
        glTexCoord2f(0.0, 1.0)
        glVertex3f(-1.0, -1.0, 0.0)
        glTexCoord2f(1.0, 1.0)
        glVertex3f(1.0, -1.0, 0.0)
        glTexCoord2f(1.0, 0.0)
        glVertex3f(1.0, 1.0, 0.0)
        glTexCoord2f(0.0, 0.0)
        glVertex3f(-1.0, 1.0, 0.0)
        glEnd()
        glBindTexture(GL_TEXTURE_2D, 0)
        glDisable(GL_TEXTURE_2D)
        glDepthMask(True)
        glEnable(GL_DEPTH_TEST)

    def _upload_texture(self) -> None:
        if self._overlay is None:
            return
        image = self._overlay
        height, width, _ = image.shape
        texture_id = self._texture_id or glGenTextures(1)
        glBindTexture(GL_TEXTURE_2D, texture_id)
        glPixelStorei(GL_UNPACK_ALIGNMENT, 1)
        glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_MIN_FILTER, GL_LINEAR)
        glTexParameteri(GL_TEXTURE_2D, GL_TEXTURE_MAG_FILTER, GL_LINEAR)
        glTexImage2D(
            GL_TEXTURE_2D,
            0,
            GL_RGB,
            width,
            height,
            0,
            GL_RGB,
            GL_UNSIGNED_BYTE,
            image,
        )
        glBindTexture(GL_TEXTURE_2D, 0)
        self._texture_id = texture_id
        self._pending_upload = False

    def release_overlay_texture(self) -> None:
        """Free the overlay texture; call before the widget is discarded."""
        if self._texture_id is not None:
            self.makeCurrent()
            glDeleteTextures([self._texture_id])
            self.doneCurrent()
            self._texture_id = None

    def closeEvent(self, event) -> None:  # noqa: N802
        self.release_overlay_texture()
        super().closeEvent(event)

    def _count_frame(self) -> None:
        self._frame_count += 1
        now = time.perf_counter()
        elapsed = now - self._frame_clock
        if elapsed >= 1.0:
            self.framesPerSecond.emit(self._frame_count / elapsed)
            self._frame_count = 0
            self._frame_clock = now
