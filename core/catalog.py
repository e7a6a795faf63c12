"""
core/catalog.py
The plugin catalog: every plugin the repository knows about, merged with
what is installed locally, plus the install intent the commands toggle.

Repository descriptor (one element of the catalog document):

    {
      "id": "jpgc-casutg",
      "name": "Custom Thread Groups",
      "description": "...",
      "vendor": "JMeter-Plugins.org",
      "canUninstall": true,
      "componentClasses": ["kg.apc.jmeter.threads.UltimateThreadGroup", ...],
      "versions": {
        "2.8": {"downloadUrl": "https://.../jmeter-plugins-casutg-2.8.jar",
                "depends": ["jpgc-common"]},
        "2.9": {...}
      }
    }

Intent is only recorded here; ``apply_changes()`` hands it to the
change applicator which does the actual work.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from core.errors import CatalogError, MalformedParameterError, UnknownPluginError

logger = logging.getLogger(__name__)


def version_key(version: str) -> tuple:
    """Sort key for dotted versions: numeric parts numerically, others as text."""
    parts = re.split(r"[.\-]", version)
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in parts)


@dataclass
class PluginVersion:
    version: str
    download_url: str = ""
    depends: list[str] = field(default_factory=list)


@dataclass(eq=False)
class Plugin:
    """A catalog entry. Identity is the plugin ID."""

    id: str
    name: str = ""
    description: str = ""
    vendor: str = ""
    component_classes: list[str] = field(default_factory=list)
    versions: dict[str, PluginVersion] = field(default_factory=dict)
    can_uninstall: bool = True
    installed_version: Optional[str] = None
    candidate_version: Optional[str] = None
    installed_intent: bool = field(default=False, init=False)

    def __post_init__(self):
        if self.candidate_version is None:
            # an installed plugin stays at its version until one is requested
            self.candidate_version = self.installed_version or self.latest_version
        self.installed_intent = self.installed_version is not None

    def __eq__(self, other):
        if not isinstance(other, Plugin):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Plugin({self.id!r})"

    @classmethod
    def from_descriptor(cls, data: dict,
                        installed_version: Optional[str] = None) -> "Plugin":
        if not isinstance(data, dict) or not data.get("id"):
            raise CatalogError(f"Invalid plugin descriptor: {data!r}")

        versions = {}
        raw_versions = data.get("versions") or {}
        for ver in sorted(raw_versions, key=version_key):
            info = raw_versions[ver] or {}
            versions[ver] = PluginVersion(
                version=ver,
                download_url=info.get("downloadUrl", ""),
                depends=list(info.get("depends") or []),
            )

        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            vendor=data.get("vendor", ""),
            component_classes=list(data.get("componentClasses") or []),
            versions=versions,
            can_uninstall=data.get("canUninstall", True),
            installed_version=installed_version,
        )

    @property
    def latest_version(self) -> Optional[str]:
        if not self.versions:
            return None
        return next(reversed(self.versions))

    @property
    def is_installed(self) -> bool:
        return self.installed_version is not None

    @property
    def is_upgradable(self) -> bool:
        latest = self.latest_version
        if not self.is_installed or latest is None:
            return False
        return version_key(latest) > version_key(self.installed_version)

    def set_candidate_version(self, version: str):
        if version not in self.versions:
            raise MalformedParameterError(
                f"Plugin {self.id} has no version {version} "
                f"(available: {', '.join(self.versions) or 'none'})")
        self.candidate_version = version

    def candidate(self) -> Optional[PluginVersion]:
        return self.versions.get(self.candidate_version or "")

    def depends(self) -> list[str]:
        cand = self.candidate()
        return list(cand.depends) if cand else []


class PluginCatalog:
    """
    All known plugins with their installed state and pending intent.
    One instance per command invocation.
    """

    def __init__(self, client, state_store, applicator_factory: Optional[Callable] = None):
        self.client = client
        self.state_store = state_store
        self.applicator_factory = applicator_factory
        self._plugins: dict[str, Plugin] = {}

    def load(self, send_repo_stats: bool = False) -> "PluginCatalog":
        installed = self.state_store.installed_versions()
        descriptors = self.client.fetch_catalog(
            installed=installed if send_repo_stats else None)

        plugins: dict[str, Plugin] = {}
        for desc in descriptors:
            plugin = Plugin.from_descriptor(desc)
            if plugin.id in plugins:
                logger.warning("Duplicate plugin id in repository: %s", plugin.id)
            if plugin.id in installed:
                plugin.installed_version = installed[plugin.id]
                plugin.candidate_version = plugin.installed_version
                plugin.installed_intent = True
            plugins[plugin.id] = plugin

        for pid in installed:
            if pid not in plugins:
                logger.warning("Installed plugin %s is no longer in the repository", pid)

        self._plugins = plugins
        logger.debug("Catalog ready: %d plugins, %d installed",
                     len(plugins), len(self.installed_plugins()))
        return self

    # ── lookup ────────────────────────────────────────────────────────────

    def get_plugin_by_id(self, plugin_id: str) -> Plugin:
        try:
            return self._plugins[plugin_id]
        except KeyError:
            raise UnknownPluginError(plugin_id) from None

    def available_plugins(self) -> list[Plugin]:
        return list(self._plugins.values())

    def installed_plugins(self) -> list[Plugin]:
        return [p for p in self._plugins.values() if p.is_installed]

    def upgradable_plugins(self) -> list[Plugin]:
        return [p for p in self._plugins.values() if p.is_upgradable]

    # ── intent ────────────────────────────────────────────────────────────

    def toggle_installed(self, plugin: Plugin, install: bool):
        if not install and not plugin.can_uninstall:
            logger.warning("Cannot uninstall plugin: %s", plugin.id)
            install = True
        plugin.installed_intent = install

    def toggle_plugins(self, plugins: Iterable[Plugin], install: bool):
        for plugin in plugins:
            self.toggle_installed(plugin, install)

    def pending_changes(self):
        from core.changes import resolve_changes
        return resolve_changes(self)

    def apply_changes(self, sink, send_stats: bool = False,
                      restart_hook: Optional[Callable[[], None]] = None):
        if self.applicator_factory is None:
            raise CatalogError("Catalog has no change applicator")
        applicator = self.applicator_factory()
        applicator.apply(self, sink, send_stats, restart_hook)

    # ── reports ───────────────────────────────────────────────────────────

    def all_plugins_status(self) -> str:
        lines = []
        for p in self._plugins.values():
            if p.is_installed:
                line = f"{p.id}={p.installed_version}"
            else:
                line = f"{p.id} (not installed)"
            if p.is_upgradable:
                line += f" [upgrade: {p.latest_version}]"
            lines.append(line)
        return "\n".join(lines)

    def available_plugins_text(self) -> str:
        return "\n".join(f"{p.id}={', '.join(p.versions)}"
                         for p in self._plugins.values())

    def upgradable_plugins_text(self) -> str:
        upgradable = self.upgradable_plugins()
        if not upgradable:
            return "There is nothing to update."
        return "\n".join(f"{p.id}={p.latest_version}" for p in upgradable)
