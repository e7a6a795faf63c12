"""
core/errors.py
Error kinds raised by the plugins manager command core.

Every error carries an ``exit_code`` so the CLI can turn it into a
distinguishing process status. Nothing in the core retries or wraps these;
they propagate unchanged up to the process boundary.
"""

from __future__ import annotations


class PluginManagerError(Exception):
    """Base class for all plugins manager failures."""
    exit_code = 1


# ── Usage errors ──────────────────────────────────────────────────────────

class UsageError(PluginManagerError):
    """Command line could not be understood."""
    exit_code = 2


class MissingCommandError(UsageError):
    """No command token was supplied."""

    def __init__(self, message: str = "Command parameter is missing"):
        super().__init__(message)


class UnknownCommandError(UsageError):
    """Command token is not one of the known commands."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Wrong command: {command}")


class MissingParameterError(UsageError):
    """A command that needs a parameter string received none."""
    pass


class MalformedParameterError(UsageError):
    """A parameter string was present but yielded nothing usable."""
    pass


# ── Catalog / selection errors ────────────────────────────────────────────

class UnknownPluginError(PluginManagerError):
    """An explicit plugin ID is absent from the catalog."""
    exit_code = 3

    def __init__(self, plugin_id: str):
        self.plugin_id = plugin_id
        super().__init__(f"Plugin not found in repo: {plugin_id}")


class SuggestionFailure(PluginManagerError):
    """A test plan could not be analyzed."""
    exit_code = 4

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Failed to analyze test plan {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ApplyFailure(PluginManagerError):
    """Install or uninstall failed while applying changes."""
    exit_code = 5


class CatalogError(PluginManagerError):
    """Plugin repository could not be loaded."""
    exit_code = 6


class ConfigError(PluginManagerError):
    """Settings are missing or invalid."""
    exit_code = 7
