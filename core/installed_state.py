"""
core/installed_state.py
File-backed record of which plugin versions are installed and which files
each one owns. Process-safe with a file lock.

    {
      "jpgc-casutg": {"version": "2.9", "files": ["jmeter-plugins-casutg-2.9.jar"]},
      ...
    }

File paths are relative to the lib directory.
"""

from __future__ import annotations
import json
import logging
import os
import tempfile

from filelock import FileLock

from core.errors import CatalogError

logger = logging.getLogger(__name__)


class InstalledStateStore:
    """JSON store of installed plugins, guarded by ``<path>.lock``."""

    def __init__(self, path: str):
        self.path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self.lock = FileLock(path + ".lock")

    def load(self) -> dict[str, dict]:
        with self.lock:
            return self._read()

    def installed_versions(self) -> dict[str, str]:
        """Map of plugin id → installed version."""
        return {pid: entry.get("version", "")
                for pid, entry in self.load().items()}

    def record_install(self, plugin_id: str, version: str, files: list[str]):
        with self.lock:
            data = self._read()
            data[plugin_id] = {"version": version, "files": list(files)}
            self._write(data)
        logger.debug("Recorded install %s=%s (%d files)", plugin_id, version, len(files))

    def record_uninstall(self, plugin_id: str) -> list[str]:
        """Forget a plugin; returns the files it owned."""
        with self.lock:
            data = self._read()
            entry = data.pop(plugin_id, None)
            self._write(data)
        if entry is None:
            return []
        logger.debug("Recorded uninstall %s", plugin_id)
        return entry.get("files", [])

    def files_of(self, plugin_id: str) -> list[str]:
        return self.load().get(plugin_id, {}).get("files", [])

    # ── internal (call with lock held) ────────────────────────────────────

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                raise CatalogError(f"Corrupt installed state {self.path}: {e}") from e
        if not isinstance(data, dict):
            logger.warning("Installed state %s is not a mapping, ignoring", self.path)
            return {}
        return data

    def _write(self, data: dict):
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
