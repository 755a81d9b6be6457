"""Locating the config that governs a changed file.

Configs are found by walking from a file's directory up towards the
repository root.  The nearest ``rufio-hooks.yaml`` wins, and the walk
never leaves the root, so a config above the repository is invisible.

In a monorepo each package may carry its own config; changed files are
grouped by their governing config so each group is checked against its
own rules.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from rufio.config.loader import ConfigLoader
from rufio.config.schema import LoadedConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "rufio-hooks.yaml"


@dataclass
class ConfigGroup:
    """Changed files sharing one governing config."""

    loaded: LoadedConfig
    files: list[str] = field(default_factory=list)


def find_config_path(file_path: str | Path, repo_root: str | Path) -> Path | None:
    """Return the nearest config file path for *file_path*, without loading it.

    Relative *file_path* values are resolved against *repo_root*.
    """
    root = Path(os.path.abspath(repo_root))
    target = Path(file_path)
    if not target.is_absolute():
        target = root / target
    target = Path(os.path.abspath(target))

    current = target.parent
    while current.is_relative_to(root):
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if current == root:
            break
        current = current.parent

    return None


def find_nearest_config(
    file_path: str | Path,
    repo_root: str | Path,
    loader: ConfigLoader | None = None,
) -> LoadedConfig | None:
    """Find and load the config governing *file_path*.

    Returns ``None`` when no config exists between the file's directory and
    *repo_root* (inclusive).

    Raises
    ------
    RufioConfigError
        When the nearest config exists but is invalid.
    """
    config_path = find_config_path(file_path, repo_root)
    if config_path is None:
        return None

    loader = loader or ConfigLoader()
    return LoadedConfig(
        config=loader.load(config_path),
        config_dir=config_path.parent,
        config_path=config_path,
    )


def group_files_by_config(
    changed_files: list[str],
    repo_root: str | Path,
    loader: ConfigLoader | None = None,
) -> dict[Path, ConfigGroup]:
    """Bucket *changed_files* (relative to *repo_root*) by governing config.

    Groups keep the order in which their first file was seen.  Files with
    no governing config are dropped.
    """
    loader = loader or ConfigLoader()
    groups: dict[Path, ConfigGroup] = {}

    for file in changed_files:
        config_path = find_config_path(file, repo_root)
        if config_path is None:
            logger.debug("No config governs %s", file)
            continue

        group = groups.get(config_path)
        if group is None:
            loaded = LoadedConfig(
                config=loader.load(config_path),
                config_dir=config_path.parent,
                config_path=config_path,
            )
            group = groups[config_path] = ConfigGroup(loaded=loaded)
        group.files.append(file)

    return groups
