"""Semantic validation for locally declared checks.

Checks are validated in their raw (as-parsed) form so that authoring
mistakes are reported in YAML terms.  The rules run in a fixed order and
the first violation wins:

1. ``name`` is present and non-empty
2. ``when.paths_changed`` is present and non-empty
3. ``then`` declares ``ensure_commands`` or ``ensure_changed``
4. ``then`` does not declare both

Preset checks are not passed through here; presets are a trusted
distribution channel.  They are still type-decoded by
:meth:`rufio.config.schema.Check.from_raw`.
"""
from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from rufio.config.errors import (
    ConflictingObligationError,
    MissingNameError,
    MissingObligationError,
    MissingTriggerError,
)


def validate_check(raw: Mapping[str, object], config_path: str | Path | None = None) -> None:
    """Raise the first validation error for *raw*, or return ``None``.

    Raises
    ------
    MissingNameError, MissingTriggerError, MissingObligationError, ConflictingObligationError
    """
    name = raw.get("name")
    if not name:
        raise MissingNameError(config_path)
    name = str(name)

    when = raw.get("when")
    if not isinstance(when, Mapping) or not when.get("paths_changed"):
        raise MissingTriggerError(name, config_path)

    then = raw.get("then")
    if not isinstance(then, Mapping):
        raise MissingObligationError(name, config_path)

    has_commands = bool(then.get("ensure_commands"))
    has_changed = bool(then.get("ensure_changed"))
    if not has_commands and not has_changed:
        raise MissingObligationError(name, config_path)
    if has_commands and has_changed:
        raise ConflictingObligationError(name, config_path)
