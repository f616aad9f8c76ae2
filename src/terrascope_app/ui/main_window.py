"""Main application window."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from loguru import logger
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import QFileDialog, QLabel, QMainWindow, QMessageBox

from ..config import SceneConfig, load_pose
from ..errors import ConfigError
from ..io.loader import fetch_image
from ..io.tiles import BoundingBox, TerrainTile, load_tile_set
from ..math.geometry import RayHit
from ..models.session import AppContext, create_context
from ..viewer.terrain_widget import TerrainViewWidget
from ..workers.task_runner import FunctionTask, TaskRunner


class MainWindow(QMainWindow):
    """Window hosting the terrain view, menus and status bar."""

    def __init__(self, context: AppContext) -> None:
        super().__init__()
        self.setWindowTitle("Terrascope Terrain Viewer")
        self.resize(1280, 800)

        self._context = context
        self._task_runner = TaskRunner()
        self._active_tasks: set[FunctionTask] = set()

        self.viewer = TerrainViewWidget(context)
        self.setCentralWidget(self.viewer)
        self._fps_label = QLabel("")
        self._pick_label = QLabel("")
        self.statusBar().addPermanentWidget(self._pick_label)
        self.statusBar().addPermanentWidget(self._fps_label)

        self._create_menu_bar()
        self._connect_signals()
        logger.info("UI initialised")

    # ------------------------------------------------------------------
    def _create_menu_bar(self) -> None:
        file_menu = self.menuBar().addMenu("&File")

        open_action = QAction("&Open Scene...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._on_open_scene)
        file_menu.addAction(open_action)

        overlay_action = QAction("Load &Overlay Image...", self)
        overlay_action.triggered.connect(self._on_load_overlay)
        file_menu.addAction(overlay_action)

        file_menu.addSeparator()
        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        view_menu = self.menuBar().addMenu("&View")

        self._normal_action = QAction("Show Surface &Normal", self)
        self._normal_action.setCheckable(True)
        self._normal_action.setShortcut(QKeySequence("N"))
        self._normal_action.toggled.connect(self.viewer.set_show_normal)
        view_menu.addAction(self._normal_action)

        self._boxes_action = QAction("Show Tile &Boxes", self)
        self._boxes_action.setCheckable(True)
        self._boxes_action.setChecked(self._context.config.show_tile_boxes)
        self._boxes_action.toggled.connect(self.viewer.set_show_tile_boxes)
        view_menu.addAction(self._boxes_action)

        camera_menu = self.menuBar().addMenu("&Camera")
        pose_action = QAction("Load &Pose...", self)
        pose_action.triggered.connect(self._on_load_pose)
        camera_menu.addAction(pose_action)

    def _connect_signals(self) -> None:
        self.viewer.framesPerSecond.connect(lambda fps: self._fps_label.setText(f"{fps:.1f} fps"))
        self.viewer.pointerPicked.connect(self._on_pointer_picked)

    # ------------------------------------------------------------------
    def load_scene(self) -> None:
        """Start loading the configured tiles and overlay image."""
        config = self._context.config
        if config.tiles:
            self.statusBar().showMessage(f"Loading {len(config.tiles)} terrain tile(s)...")
            task = FunctionTask(
                "load tiles",
                load_tile_set,
                list(config.tiles),
                self._context.converter,
                self._context.tile_rotation,
            )
            self._bind_task(task, lambda result, ctx=self._context: self._tiles_loaded(ctx, result))
        else:
            logger.warning("Scene configuration lists no terrain tiles")
        if config.overlay_image:
            self._load_overlay(config.overlay_image)

    def _load_overlay(self, location: str) -> None:
        self.statusBar().showMessage("Loading overlay image...")
        task = FunctionTask("load overlay", fetch_image, location)
        self._bind_task(task, lambda image, ctx=self._context: self._overlay_loaded(ctx, image))

    def _tiles_loaded(self, context: AppContext, result: Tuple[BoundingBox, List[TerrainTile]]) -> None:
        if context is not self._context:
            logger.debug("Discarding tiles loaded for a replaced scene")
            return
        bounds, tiles = result
        self._context.set_tiles(bounds, tiles)
        self.viewer.tiles_changed()
        if bounds.is_empty:
            self.statusBar().showMessage("No supported terrain meshes were found", 4000)
        else:
            size = bounds.size
            self.statusBar().showMessage(
                f"Loaded {len(tiles)} tile(s), extent {size[0]:.0f} x {size[1]:.0f} x {size[2]:.0f} m",
                4000,
            )

    def _overlay_loaded(self, context: AppContext, image: np.ndarray) -> None:
        if context is not self._context:
            return
        self.viewer.set_overlay_image(image)
        self.statusBar().showMessage("Overlay image loaded", 3000)

    def _on_pointer_picked(self, hit: Optional[RayHit]) -> None:
        if hit is None:
            self._pick_label.setText("")
            return
        x, y, z = hit.point
        self._pick_label.setText(f"ECEF {x:.2f}, {y:.2f}, {z:.2f} | range {hit.distance:.1f} m")

    # ------------------------------------------------------------------
    def _on_open_scene(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open Scene", "", "Scene files (*.json)")
        if not path:
            return
        try:
            config = SceneConfig.from_file(Path(path))
            context = create_context(config)
        except ConfigError as exc:
            logger.error("Invalid scene {}: {}", path, exc)
            QMessageBox.warning(self, "Invalid Scene", str(exc))
            return
        logger.info("Opening scene {}", path)
        self._replace_context(context)
        self.load_scene()

    def _replace_context(self, context: AppContext) -> None:
        # setCentralWidget deletes the old view without a closeEvent.
        self.viewer.release_overlay_texture()
        self._context = context
        self._normal_action.toggled.disconnect()
        self._boxes_action.toggled.disconnect()
        self._boxes_action.setChecked(context.config.show_tile_boxes)
        viewer = TerrainViewWidget(context)
        viewer.set_show_normal(self._normal_action.isChecked())
        self.viewer = viewer
        self.setCentralWidget(viewer)
        self._normal_action.toggled.connect(viewer.set_show_normal)
        self._boxes_action.toggled.connect(viewer.set_show_tile_boxes)
        self._connect_signals()

    def _on_load_pose(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Select Camera Pose", "", "Pose files (*.json)")
        if not path:
            return
        try:
            pose = load_pose(Path(path))
        except ConfigError as exc:
            logger.error("Invalid pose {}: {}", path, exc)
            QMessageBox.warning(self, "Invalid Pose", str(exc))
            return
        self._context.set_pose(pose)
        self.viewer.pose_changed()
        self.statusBar().showMessage(
            f"Camera at yaw {pose.yaw:.2f}, pitch {pose.pitch:.2f}, roll {pose.roll:.2f} deg", 3000
        )

    def _on_load_overlay(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Select Overlay Image",
            "",
            "Images (*.jpg *.jpeg *.png *.bmp *.tif *.tiff)",
        )
        if path:
            self._load_overlay(path)

    # ------------------------------------------------------------------
    def _bind_task(self, task: FunctionTask, on_success) -> None:
        self._active_tasks.add(task)
        task.signals.finished.connect(lambda result, t=task: self._on_task_success(t, result, on_success))
        task.signals.failed.connect(lambda message, t=task: self._on_task_failure(t, message))
        self._task_runner.submit(task)

    def _on_task_success(self, task: FunctionTask, result, on_success) -> None:
        self._active_tasks.discard(task)
        if not self._active_tasks:
            self.statusBar().clearMessage()
        on_success(result)

    def _on_task_failure(self, task: FunctionTask, message: str) -> None:
        self._active_tasks.discard(task)
        self.statusBar().clearMessage()
        logger.error("Background task '{}' failed: {}", task.name, message)
        QMessageBox.critical(self, "Error", f"Operation failed:\n{message}")

    def closeEvent(self, event) -> None:  # noqa: N802
        self._task_runner.wait(2000)
        super().closeEvent(event)
