"""Policy configuration package for rufio.

Exports the typed model, loader, preset resolver and config discovery
helpers used by the check runner and the CLI.
"""
from __future__ import annotations

from rufio.config.discovery import (
    CONFIG_FILENAME,
    ConfigGroup,
    find_config_path,
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
from rufio.config.loader import ConfigLoader, RawDocument, load_config, parse_document
from rufio.config.presets import BUILTIN_PRESETS, PresetResolver, default_preset_dir
from rufio.config.schema import (
    Check,
    EnsureChanged,
    EnsureCommands,
    LoadedConfig,
    RufioConfig,
    When,
)
from rufio.config.validator import validate_check

__all__ = [
    "BUILTIN_PRESETS",
    "CONFIG_FILENAME",
    "Check",
    "ConfigGroup",
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
    "RawDocument",
    "RufioConfig",
    "RufioConfigError",
    "When",
    "default_preset_dir",
    "find_config_path",
    "find_nearest_config",
    "group_files_by_config",
    "load_config",
    "parse_document",
    "validate_check",
]
