"""
core/dispatcher.py
Command dispatcher: the single entry point of the plugins manager core.

    process_params(["install", "jpgc-casutg=2.9,jpgc-dummy"])

Maps the command token to a read-only report or to a selection strategy
followed by applying the changes. Unknown or missing commands print the
help text to ``out`` and then raise; every other error propagates as is.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Callable, Iterable, Optional, TextIO

from core.errors import MissingCommandError, UnknownCommandError
from core.logging_config import NullLoggingConfigurator
from core.progress import LoggingProgressSink
from core.selection import (
    require_param, select_all_except, select_for_plans, select_listed,
)
from core.suggester import PluginSuggester

logger = logging.getLogger(__name__)

COMMANDS = (
    "help", "status", "available", "upgrades",
    "install", "install-all-except", "install-for-jmx", "uninstall",
)

HELP_TEXT = (
    "Options for tool 'PluginsManagerCMD': <command> <paramstr> "
    " where <command> is one of: " + ", ".join(COMMANDS) + ".\n"
    "  install / uninstall   id[=version][,id2[=version2]...]\n"
    "  install-all-except    [id1,id2,...]\n"
    "  install-for-jmx       path1[,path2,...]"
)


class DispatchState(Enum):
    AWAITING_COMMAND = "awaiting_command"
    DISPATCHING = "dispatching"
    DONE = "done"
    FAILED = "failed"


def show_help(out: TextIO):
    print(HELP_TEXT, file=out)


class CommandDispatcher:
    """
    Runs one command to completion per ``process_params`` call.

    Args:
        catalog_factory: ``catalog_factory(send_repo_stats)`` → loaded catalog;
            called once per command that needs the catalog
        suggester_factory: builds a suggester for a catalog
        out: stream for help text and reports (stdout by default)
        logging_configurator: object with ``configure()``, run once at start
    """

    def __init__(self, catalog_factory: Callable[[bool], object],
                 suggester_factory: Callable = PluginSuggester,
                 out: Optional[TextIO] = None,
                 logging_configurator=None):
        self.catalog_factory = catalog_factory
        self.suggester_factory = suggester_factory
        self.out = out
        self.logging_configurator = logging_configurator or NullLoggingConfigurator()
        self.progress = LoggingProgressSink()
        self.state = DispatchState.AWAITING_COMMAND
        self._logging_ready = False

    @property
    def _out(self) -> TextIO:
        return self.out if self.out is not None else sys.stdout

    def _print(self, text: str):
        print(text, file=self._out)

    def process_params(self, args: Iterable[str]) -> int:
        if not self._logging_ready:
            self.logging_configurator.configure()
            self._logging_ready = True

        self.state = DispatchState.AWAITING_COMMAND
        it = iter(args)
        command = next(it, None)
        if command is None:
            self.state = DispatchState.FAILED
            show_help(self._out)
            raise MissingCommandError()

        command = str(command)
        logger.info("Command is: %s", command)
        param = next(it, None)
        if param is not None:
            param = str(param)

        self.state = DispatchState.DISPATCHING
        extra = list(it)
        if extra:
            logger.warning("Ignoring extra arguments: %s", " ".join(map(str, extra)))

        try:
            self._dispatch(command, param)
        except Exception:
            self.state = DispatchState.FAILED
            raise
        self.state = DispatchState.DONE
        return 0

    def _dispatch(self, command: str, param: Optional[str]):
        if command == "help":
            show_help(self._out)
        elif command == "status":
            self._print(self.catalog_factory(False).all_plugins_status())
        elif command == "available":
            self._print(self.catalog_factory(False).available_plugins_text())
        elif command == "upgrades":
            self._print(self.catalog_factory(False).upgradable_plugins_text())
        elif command == "install":
            self.process(param, True)
        elif command == "uninstall":
            self.process(param, False)
        elif command == "install-all-except":
            self.install_all(param)
        elif command == "install-for-jmx":
            self.install_for_jmx(param)
        else:
            show_help(self._out)
            raise UnknownCommandError(command)

    # ── selection + apply ─────────────────────────────────────────────────

    def _apply(self, catalog, selection):
        logger.info("%s %d plugin(s): %s",
                    "Installing" if selection.install else "Uninstalling",
                    len(selection), ", ".join(selection.ids) or "-")
        catalog.apply_changes(self.progress, False, None)
        return selection

    def process(self, param: Optional[str], install: bool):
        require_param(param, "Plugins list parameter is missing")
        catalog = self.catalog_factory(True)
        return self._apply(catalog, select_listed(catalog, param, install))

    def install_all(self, param: Optional[str]):
        catalog = self.catalog_factory(True)
        return self._apply(catalog, select_all_except(catalog, param))

    def install_for_jmx(self, param: Optional[str]):
        require_param(param, "No jmx files specified")
        catalog = self.catalog_factory(False)
        suggester = self.suggester_factory(catalog)
        return self._apply(catalog, select_for_plans(catalog, suggester, param))
