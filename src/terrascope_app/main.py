"""Application bootstrap utilities."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QGuiApplication
from PyQt6.QtWidgets import QApplication

from .config import SceneConfig
from .errors import ConfigError, InvalidZone
from .logging import configure_logging
from .models.session import create_context
from .ui.main_window import MainWindow


def _configure_high_dpi() -> None:
    """Configure high-DPI handling before QApplication instantiation."""
    QGuiApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="terrascope",
        description="View geo-referenced terrain tiles through a surveyed camera.",
    )
    parser.add_argument(
        "scene",
        nargs="?",
        type=Path,
        help="Scene configuration (JSON). Defaults to the built-in demo pose without tiles.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Launch the Terrascope desktop application."""
    argv = list(sys.argv if argv is None else argv)
    args, qt_args = build_parser().parse_known_args(argv[1:])
    configure_logging(verbose=args.verbose)

    try:
        config = SceneConfig.from_file(args.scene) if args.scene else SceneConfig()
        context = create_context(config)
    except (ConfigError, InvalidZone) as exc:
        logger.error("{}", exc)
        return 2
    logger.info(
        "Camera aspect ratio {:.4f} (hfov {} deg, vfov {} deg)",
        context.camera.aspect_ratio,
        config.pose.hfov,
        config.pose.vfov,
    )

    _configure_high_dpi()
    app = QApplication([argv[0], *qt_args])

    window = MainWindow(context)
    window.show()
    window.load_scene()

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
