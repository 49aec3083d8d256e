"""Background loader that fills the DefinitionStore from a directory."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Union

from ..definition.store import DefinitionStore
from ..exceptions import DefinitionLoadError
from ..persistence import find_definition_files, load_definition

logger = logging.getLogger(__name__)


class DefinitionLoader:
    """Loads every definition file under ``definition_dir`` into ``store``.

    Runs in a daemon thread so the server answers requests while large
    directories are still loading. ``total`` and ``loaded`` are read without
    coordination; a reader may see them at slightly different points.
    """

    def __init__(self, definition_dir: Union[str, Path], store: DefinitionStore) -> None:
        self.definition_dir = Path(definition_dir)
        self.store = store
        self.total = 0
        self.loaded = 0
        self.failed: list[Path] = []

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._paths: list[Path] | None = None

    def discover(self) -> list[Path]:
        """Find the files to load (once) and publish ``total``."""
        if self._paths is None:
            self._paths = find_definition_files(self.definition_dir)
            self.total = len(self._paths)
            logger.debug("Found %d definition files in %s", self.total, self.definition_dir)
        return self._paths

    def load_all(self) -> None:
        """Load every discovered file; unreadable files are logged and skipped."""
        for path in self.discover():
            if self._stop_event.is_set():
                logger.debug("Loader stopped after %d/%d files", self.loaded, self.total)
                return
            try:
                definition = load_definition(path)
            except DefinitionLoadError as exc:
                logger.warning("Skipping %s: %s", path, exc.reason)
                self.failed.append(path)
                continue
            self.store.set(definition)
            self.loaded += 1

        logger.info(
            "Loaded %d definitions from %s (%d skipped)",
            self.loaded,
            self.definition_dir,
            len(self.failed),
        )

    def start(self) -> None:
        """Start loading in a background thread."""
        self.discover()
        self._thread = threading.Thread(
            target=self.load_all,
            name="call-atlas-loader",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the loader to stop and wait for it."""
        self._stop_event.set()
        self.join(timeout=5)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Loader thread did not exit within %s seconds", timeout)

    @property
    def is_loading(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
