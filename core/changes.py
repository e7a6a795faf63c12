"""
core/changes.py
Turns the catalog's install intent into a concrete change set and applies it:
uninstalls first, then downloads and records installs.

Dependencies follow the candidate version's ``depends`` list:
  - installing a plugin also installs whatever it depends on
  - uninstalling a plugin also uninstalls installed plugins that depend on it
"""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import urlparse

from core.catalog import Plugin
from core.errors import ApplyFailure, UnknownPluginError

logger = logging.getLogger(__name__)


@dataclass
class ChangeSet:
    install: list[tuple[Plugin, str]] = field(default_factory=list)
    uninstall: list[Plugin] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.install and not self.uninstall

    def summary(self) -> dict:
        return {
            "install": {p.id: ver for p, ver in self.install},
            "uninstall": [p.id for p in self.uninstall],
        }


def _needs_install(plugin: Plugin) -> bool:
    if not plugin.installed_intent:
        return False
    return (not plugin.is_installed
            or plugin.candidate_version != plugin.installed_version)


def resolve_changes(catalog) -> ChangeSet:
    """Compute what ``apply`` would do for the catalog's current intent."""
    to_install: dict[str, Plugin] = {}
    queue = [p for p in catalog.available_plugins() if _needs_install(p)]
    while queue:
        plugin = queue.pop(0)
        if plugin.id in to_install:
            continue
        to_install[plugin.id] = plugin
        for dep_id in plugin.depends():
            try:
                dep = catalog.get_plugin_by_id(dep_id)
            except UnknownPluginError:
                raise ApplyFailure(
                    f"Plugin {plugin.id} depends on {dep_id}, which is not in the repository")
            if not dep.installed_intent:
                logger.info("Enabling %s, required by %s", dep.id, plugin.id)
                catalog.toggle_installed(dep, True)
            if _needs_install(dep):
                queue.append(dep)

    to_uninstall: dict[str, Plugin] = {
        p.id: p for p in catalog.available_plugins()
        if p.is_installed and not p.installed_intent and p.id not in to_install
    }
    changed = True
    while changed:
        changed = False
        for p in catalog.installed_plugins():
            if p.id in to_uninstall or p.id in to_install:
                continue
            if any(dep in to_uninstall for dep in p.depends()):
                logger.info("Uninstalling %s, it depends on a removed plugin", p.id)
                to_uninstall[p.id] = p
                changed = True

    return ChangeSet(
        install=[(p, p.candidate_version) for p in to_install.values()],
        uninstall=list(to_uninstall.values()),
    )


def _artifact_name(url: str, plugin: Plugin, version: str) -> str:
    name = posixpath.basename(urlparse(url).path)
    return name or f"{plugin.id}-{version}.jar"


class ChangeApplicator:
    """Performs the install/uninstall work for one catalog."""

    def __init__(self, client, state_store, lib_dir: str):
        self.client = client
        self.state_store = state_store
        self.lib_dir = lib_dir

    def apply(self, catalog, sink, send_stats: bool = False,
              restart_hook: Optional[Callable[[], None]] = None):
        changes = catalog.pending_changes()
        if changes.is_empty:
            sink.on_info("Nothing to do")
            return

        try:
            for plugin in changes.uninstall:
                self._uninstall(plugin, sink)
            for plugin, version in changes.install:
                self._install(plugin, version, sink)
        except OSError as e:
            raise ApplyFailure(f"Failed to update installed state: {e}") from e

        sink.on_info(f"Done: {len(changes.install)} installed, "
                     f"{len(changes.uninstall)} uninstalled")

        if send_stats:
            self.client.report_stats(changes.summary())
        if restart_hook is not None:
            restart_hook()

    def _remove_files(self, files: list[str]):
        for rel in files:
            path = os.path.join(self.lib_dir, rel)
            try:
                os.remove(path)
            except FileNotFoundError:
                logger.warning("File already gone: %s", path)
            except OSError as e:
                raise ApplyFailure(f"Failed to delete {path}: {e}")

    def _uninstall(self, plugin: Plugin, sink):
        sink.on_info(f"Uninstalling {plugin.id}")
        self._remove_files(self.state_store.files_of(plugin.id))
        self.state_store.record_uninstall(plugin.id)
        plugin.installed_version = None

    def _install(self, plugin: Plugin, version: str, sink):
        info = plugin.versions.get(version)
        if info is None or not info.download_url:
            raise ApplyFailure(f"No download URL for {plugin.id}={version}")

        sink.on_info(f"Downloading {plugin.id}={version}")
        name = _artifact_name(info.download_url, plugin, version)
        dest = os.path.join(self.lib_dir, name)
        self.client.download(
            info.download_url, dest,
            on_progress=lambda pct: sink.on_progress(f"Downloading {plugin.id}: {pct}%"))

        old_files = [f for f in self.state_store.files_of(plugin.id) if f != name]
        self._remove_files(old_files)
        self.state_store.record_install(plugin.id, version, [name])
        plugin.installed_version = version
        sink.on_info(f"Installed {plugin.id}={version}")
