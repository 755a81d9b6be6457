"""rufio — workflow policy checks for agent sessions.

Given the files changed in a session and the session's tool transcript,
rufio decides whether required follow-up actions happened: commands run
after touching source, or a version file bumped after touching a
manifest.  Policy lives in ``rufio-hooks.yaml`` files inside the
repository; the nearest one above a changed file governs it.

Public API
----------
The stable public surface is everything exported from this module.

Example
-------
>>> import rufio
>>> rufio.evaluate(["src/app.ts"], messages, "/repo")
"Check 'biome' failed: these commands must run after editing **/*.ts: biome check"
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
from rufio.checks.runner import CheckResult, CheckRunner, evaluate, run_checks
from rufio.transcript import EventKind, ToolEvent, extract_tool_events, index_tool_parts

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from rufio.config.discovery import (
    CONFIG_FILENAME,
    find_nearest_config,
    group_files_by_config,
)
from rufio.config.errors import (
    ConfigParseError,
    ConflictingObligationError,
    MissingNameError,
    MissingObligationError,
    MissingTriggerError,
    NoChecksDefinedError,
    PresetNotFoundError,
    RufioConfigError,
)
from rufio.config.loader import ConfigLoader, load_config
from rufio.config.presets import BUILTIN_PRESETS, PresetResolver
from rufio.config.schema import Check, EnsureChanged, EnsureCommands, LoadedConfig, RufioConfig, When

# ---------------------------------------------------------------------------
# Host integration
# ---------------------------------------------------------------------------
from rufio.plugin.hooks import RufioHooks
from rufio.plugin.session import SessionContext, SessionRegistry

__all__ = [
    "__version__",
    # Engine
    "CheckResult",
    "CheckRunner",
    "EventKind",
    "ToolEvent",
    "evaluate",
    "extract_tool_events",
    "index_tool_parts",
    "run_checks",
    # Configuration
    "BUILTIN_PRESETS",
    "CONFIG_FILENAME",
    "Check",
    "ConfigLoader",
    "ConfigParseError",
    "ConflictingObligationError",
    "EnsureChanged",
    "EnsureCommands",
    "LoadedConfig",
    "MissingNameError",
    "MissingObligationError",
    "MissingTriggerError",
    "NoChecksDefinedError",
    "PresetNotFoundError",
    "PresetResolver",
    "RufioConfig",
    "RufioConfigError",
    "When",
    "find_nearest_config",
    "load_config",
    "group_files_by_config",
    # Host integration
    "RufioHooks",
    "SessionContext",
    "SessionRegistry",
]
