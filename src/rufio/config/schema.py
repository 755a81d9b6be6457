"""Typed policy model.

YAML has no static schema, so every check read from a document (local or
preset) passes through :meth:`Check.from_raw`, which decodes the untyped
mapping into frozen pydantic models.  The obligation is a discriminated
union: a check carries either :class:`EnsureCommands` or
:class:`EnsureChanged`, never both.

The on-disk shape of a check is::

    name: biome
    when:
      paths_changed: "**/*.ts"
      path_exists: package.nix      # optional
    then:
      ensure_commands: [biome check]  # or ensure_changed: [version.toml]
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, ValidationError

from rufio.config.errors import ConfigParseError


class When(BaseModel):
    """Trigger conditions for a check."""

    model_config = {"frozen": True, "extra": "ignore"}

    paths_changed: str = Field(min_length=1)
    path_exists: str | None = Field(default=None)


class EnsureCommands(BaseModel):
    """Every listed command must run after the last matching edit."""

    model_config = {"frozen": True}

    kind: Literal["ensure_commands"] = "ensure_commands"
    commands: tuple[str, ...] = Field(min_length=1)


class EnsureChanged(BaseModel):
    """At least one listed path must be edited during the session."""

    model_config = {"frozen": True}

    kind: Literal["ensure_changed"] = "ensure_changed"
    paths: tuple[str, ...] = Field(min_length=1)


Obligation = Annotated[Union[EnsureCommands, EnsureChanged], Field(discriminator="kind")]


class Check(BaseModel):
    """A named policy rule pairing a trigger with an obligation."""

    model_config = {"frozen": True}

    name: str
    when: When
    then: Obligation

    @classmethod
    def from_raw(
        cls,
        raw: Mapping[str, object],
        config_path: str | Path | None = None,
    ) -> "Check":
        """Decode a check mapping as written in YAML.

        Raises
        ------
        ConfigParseError
            When the mapping cannot be represented as a :class:`Check`
            (wrong types, no obligation, or both obligations).
        """
        name = raw.get("name")
        label = name if isinstance(name, str) and name else "<unnamed>"

        then_raw = raw.get("then")
        if then_raw is None:
            then_raw = {}
        if not isinstance(then_raw, Mapping):
            raise ConfigParseError(f"check '{label}': 'then' must be a mapping", config_path)

        commands = then_raw.get("ensure_commands")
        changed = then_raw.get("ensure_changed")
        if commands and changed:
            raise ConfigParseError(
                f"check '{label}': 'then' holds both ensure_commands and ensure_changed",
                config_path,
            )
        if commands:
            then: dict[str, object] = {"kind": "ensure_commands", "commands": _as_sequence(commands)}
        elif changed:
            then = {"kind": "ensure_changed", "paths": _as_sequence(changed)}
        else:
            raise ConfigParseError(f"check '{label}': 'then' has no obligation", config_path)

        try:
            return cls.model_validate({"name": name, "when": raw.get("when"), "then": then})
        except ValidationError as exc:
            raise ConfigParseError(f"check '{label}' is malformed: {exc}", config_path) from exc

    def to_raw(self) -> dict[str, object]:
        """Return the YAML-shaped mapping for this check."""
        when: dict[str, object] = {"paths_changed": self.when.paths_changed}
        if self.when.path_exists is not None:
            when["path_exists"] = self.when.path_exists
        if isinstance(self.then, EnsureCommands):
            then: dict[str, object] = {"ensure_commands": list(self.then.commands)}
        else:
            then = {"ensure_changed": list(self.then.paths)}
        return {"name": self.name, "when": when, "then": then}


def _as_sequence(value: object) -> object:
    # A bare string would otherwise be iterated character by character.
    if isinstance(value, str):
        return [value]
    return value


class RufioConfig(BaseModel):
    """A resolved document: preset checks followed by local checks."""

    model_config = {"frozen": True}

    checks: tuple[Check, ...]


@dataclass(frozen=True)
class LoadedConfig:
    """A resolved document together with where it was read from."""

    config: RufioConfig
    config_dir: Path
    config_path: Path
