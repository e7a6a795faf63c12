"""
cli/plugins_cmd.py
Command-line entry point:

  pmgr help
  pmgr status | available | upgrades
  pmgr install jpgc-casutg=2.9,jpgc-dummy
  pmgr uninstall jpgc-dummy
  pmgr install-all-except jpgc-oauth,jpgc-webdriver
  pmgr install-for-jmx plans/load.jmx,plans/soak.jmx

Global options come before the command (``pmgr --home /opt/jmeter status``).
Errors print one line to stderr and set a distinguishing exit status.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

from adapters.repo import RepoClient
from cli.helpers import get_version
from cli.theme import theme as _theme
from core.catalog import PluginCatalog
from core.changes import ChangeApplicator
from core.dispatcher import COMMANDS, CommandDispatcher
from core.errors import PluginManagerError
from core.installed_state import InstalledStateStore
from core.logging_config import LoggingConfigurator, NullLoggingConfigurator
from core.settings import Settings, load_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pmgr",
        description="Install, upgrade and remove JMeter plugins.",
        epilog="Commands: " + ", ".join(COMMANDS),
    )
    parser.add_argument("-V", "--version", action="version",
                        version=f"%(prog)s {get_version()}")
    parser.add_argument("--home", default=None,
                        help="JMeter home to manage (default: PMGR_HOME or current dir)")
    parser.add_argument("--config", default=None,
                        help="YAML config file (default: <home>/pmgr.yaml if present)")
    parser.add_argument("--repo-url", dest="repo_url", default=None,
                        help="Plugin repository URL")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Network timeout in seconds (default: 30)")
    parser.add_argument("--log-level", dest="log_level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level (DEBUG shows download progress)")
    parser.add_argument("--no-log-config", dest="no_log_config", action="store_true",
                        help="Leave logging configuration to the host process")
    parser.add_argument("command", nargs="?", default=None,
                        help="Command to run")
    parser.add_argument("params", nargs="*",
                        help="Command parameter string")
    return parser


def catalog_factory(settings: Settings):
    """Return ``factory(send_repo_stats)`` building a loaded catalog."""

    def factory(send_repo_stats: bool) -> PluginCatalog:
        client = RepoClient(settings.repo_url, timeout=settings.timeout)
        store = InstalledStateStore(settings.state_path)
        catalog = PluginCatalog(
            client, store,
            applicator_factory=lambda: ChangeApplicator(client, store, settings.lib_path),
        )
        return catalog.load(send_repo_stats=send_repo_stats)

    return factory


def build_dispatcher(settings: Settings, out: Optional[TextIO] = None) -> CommandDispatcher:
    if settings.configure_logging:
        configurator = LoggingConfigurator.from_settings(settings)
    else:
        configurator = NullLoggingConfigurator()
    return CommandDispatcher(catalog_factory(settings), out=out,
                             logging_configurator=configurator)


def main(argv: Optional[list[str]] = None, out: Optional[TextIO] = None,
         err_console: Optional[Console] = None) -> int:
    args = build_parser().parse_args(argv)
    err = err_console or Console(stderr=True, highlight=False)

    try:
        settings = load_settings(
            config_path=args.config,
            default_home=os.getcwd(),
            home=args.home,
            repo_url=args.repo_url,
            timeout=args.timeout,
            log_level=args.log_level,
            configure_logging=False if args.no_log_config else None,
        )
        dispatcher = build_dispatcher(settings, out=out)
        argv_tail = [args.command, *args.params] if args.command else []
        return dispatcher.process_params(argv_tail)
    except PluginManagerError as e:
        logger.debug("Command failed", exc_info=True)
        err.print(_theme.wrap(_theme.error, escape(f"Error: {e}")))
        return e.exit_code
    except KeyboardInterrupt:
        err.print(_theme.wrap(_theme.warning, "Interrupted"))
        return 130


if __name__ == "__main__":
    sys.exit(main())
