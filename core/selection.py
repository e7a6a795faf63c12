"""
core/selection.py
The three ways a command picks the plugins whose install intent changes:

  select_listed        install / uninstall   id[=version],...  (strict IDs)
  select_all_except    install-all-except    id,...            (best-effort)
  select_for_plans     install-for-jmx       path,...          (suggested)

Each strategy toggles intent on the catalog's plugins and returns what it
selected; nothing is installed until the catalog's changes are applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from core.catalog import Plugin
from core.errors import MalformedParameterError, MissingParameterError
from core.params import parse_params

logger = logging.getLogger(__name__)


@dataclass
class SelectionResult:
    """Plugins selected by one command, all toggled in one direction."""

    install: bool
    plugins: list[Plugin] = field(default_factory=list)

    def __len__(self):
        return len(self.plugins)

    @property
    def ids(self) -> list[str]:
        return [p.id for p in self.plugins]


def require_param(param: Optional[str], message: str) -> str:
    if param is None:
        raise MissingParameterError(message)
    return param


def select_listed(catalog, param: Optional[str], install: bool) -> SelectionResult:
    """Explicit ``id[=version]`` list.

    Every ID is looked up before anything is touched, so an unknown ID
    (reported left to right) leaves all plugins as they were.
    """
    param = require_param(param, "Plugins list parameter is missing")
    specs = parse_params(param)
    if not specs:
        raise MalformedParameterError(f"No plugins found in parameter: {param!r}")

    resolved = [(catalog.get_plugin_by_id(pid), version)
                for pid, version in specs.items()]
    for plugin, version in resolved:
        if version is not None and version not in plugin.versions:
            raise MalformedParameterError(
                f"Plugin {plugin.id} has no version {version}")

    for plugin, version in resolved:
        if version is not None:
            plugin.set_candidate_version(version)

    result = SelectionResult(install=install)
    for plugin, _ in resolved:
        catalog.toggle_installed(plugin, install)
        result.plugins.append(plugin)
    return result


def select_all_except(catalog, param: Optional[str]) -> SelectionResult:
    """Every available plugin except the listed IDs.

    Versions in the exclusion list are ignored and unknown IDs are not an
    error: the list only filters.
    """
    excluded = set(parse_params(param).keys()) if param is not None else set()
    unknown = excluded - {p.id for p in catalog.available_plugins()}
    if unknown:
        logger.debug("Exclusions not in repository: %s", ", ".join(sorted(unknown)))

    result = SelectionResult(install=True)
    for plugin in catalog.available_plugins():
        if plugin.id not in excluded:
            catalog.toggle_installed(plugin, True)
            result.plugins.append(plugin)
    return result


def select_for_plans(catalog, suggester, param: Optional[str]) -> SelectionResult:
    """Union of the plugins suggested for each listed test plan.

    Any plan that cannot be analyzed aborts the whole selection before a
    single plugin is toggled.
    """
    param = require_param(param, "No jmx files specified")
    paths = list(parse_params(param).keys())
    if not paths:
        raise MalformedParameterError(f"No test plan paths found in parameter: {param!r}")

    suggested: dict[str, Plugin] = {}
    for path in paths:
        for plugin in sorted(suggester.analyze_test_plan(path), key=lambda p: p.id):
            suggested.setdefault(plugin.id, plugin)

    result = SelectionResult(install=True, plugins=list(suggested.values()))
    catalog.toggle_plugins(result.plugins, True)
    return result
