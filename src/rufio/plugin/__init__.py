"""Host integration package for rufio.

Exports the lifecycle hooks, the per-session context registry and the
collaborators the hooks use (git changed-file lister, tab status).
"""
from __future__ import annotations

from rufio.plugin.git import list_changed_files, parse_porcelain
from rufio.plugin.hooks import RufioHooks, SessionHost
from rufio.plugin.session import SessionContext, SessionRegistry
from rufio.plugin.status import TabState, TabStatusUpdater, derive_name_from_cwd

__all__ = [
    "RufioHooks",
    "SessionContext",
    "SessionHost",
    "SessionRegistry",
    "TabState",
    "TabStatusUpdater",
    "derive_name_from_cwd",
    "list_changed_files",
    "parse_porcelain",
]
