"""Run tile and image loading off the GUI thread."""
from __future__ import annotations

import time
import traceback
from typing import Any, Callable

from loguru import logger
from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal


class TaskSignals(QObject):
    """Signals available from a background task."""

    finished = pyqtSignal(object)
    failed = pyqtSignal(str)


class FunctionTask(QRunnable):
    """Wrap a callable for execution in the Qt thread pool.

    Exceptions never cross the thread boundary; they are reported through
    ``signals.failed`` with the formatted traceback.
    """

    def __init__(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.name = name
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = TaskSignals()

    def run(self) -> None:
        started = time.perf_counter()
        logger.debug("Task '{}' started", self.name)
        try:
            result = self.fn(*self.args, **self.kwargs)
        except Exception as exc:  # noqa: BLE001
            tb = traceback.format_exc()
            logger.error("Task '{}' failed: {}", self.name, exc)
            self.signals.failed.emit(f"{exc}\n{tb}")
        else:
            logger.debug("Task '{}' finished in {:.2f} s", self.name, time.perf_counter() - started)
            self.signals.finished.emit(result)


class TaskRunner:
    """Thread pool front end.

    Tile sets are loaded inside a single task, so ``max_threads`` only bounds
    how many independent loads (tiles, overlay image) overlap.
    """

    def __init__(self, max_threads: int | None = None) -> None:
        self._pool = QThreadPool.globalInstance()
        if max_threads is not None:
            self._pool.setMaxThreadCount(max_threads)

    def submit(self, task: FunctionTask) -> None:
        self._pool.start(task)

    def wait(self, timeout_ms: int = -1) -> bool:
        """Block until every submitted task finished (used on shutdown)."""
        return self._pool.waitForDone(timeout_ms)
