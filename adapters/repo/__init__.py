"""
adapters/repo/ — plugin repository integration.

Public API:
    RepoClient — HTTP client for the repository catalog and plugin downloads
"""

from adapters.repo.client import RepoClient  # noqa: F401

__all__ = ["RepoClient"]
