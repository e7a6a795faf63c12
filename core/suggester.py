"""
core/suggester.py
Looks at a JMeter test plan (.jmx, XML) and suggests the catalog plugins
whose components it uses but which are not installed yet.

Every element's ``testclass`` and ``guiclass`` attribute names a component
class; a plugin matches when one of its ``component_classes`` is used.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from core.errors import SuggestionFailure

logger = logging.getLogger(__name__)

_CLASS_ATTRS = ("testclass", "guiclass")


def used_classes(path: str) -> set[str]:
    """Collect component class names referenced by a test plan."""
    try:
        tree = ET.parse(path)
    except FileNotFoundError:
        raise SuggestionFailure(path, "file not found")
    except OSError as e:
        raise SuggestionFailure(path, str(e))
    except ET.ParseError as e:
        raise SuggestionFailure(path, f"not a valid test plan: {e}")

    classes = set()
    for elem in tree.iter():
        for attr in _CLASS_ATTRS:
            value = elem.get(attr)
            if value:
                classes.add(value.strip())
    return classes


class PluginSuggester:
    """Maps test plans to the plugins they need."""

    def __init__(self, catalog):
        self.catalog = catalog

    def analyze_test_plan(self, path: str) -> set:
        logger.info("Analyzing test plan: %s", path)
        classes = used_classes(path)

        suggested = set()
        for plugin in self.catalog.available_plugins():
            if plugin.is_installed:
                continue
            if classes.intersection(plugin.component_classes):
                suggested.add(plugin)

        if suggested:
            logger.info("Plugins needed by %s: %s", path,
                        ", ".join(sorted(p.id for p in suggested)))
        else:
            logger.info("No missing plugins for %s", path)
        return suggested
