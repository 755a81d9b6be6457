"""Named preset resolution.

A preset is a reusable bundle of checks referenced from a config by name::

    presets:
      - cargo
      - meow

Each name is looked up first as ``<preset_dir>/<name>.yaml`` (a document
with a top-level ``checks:`` list) and then in :data:`BUILTIN_PRESETS`.
The override directory defaults to ``$RUFIO_PRESETS_DIR``, then
``$XDG_CONFIG_HOME/rufio/presets``, then ``~/.config/rufio/presets``.

Names expand in declaration order and are not de-duplicated.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

import yaml

from rufio.config.errors import ConfigParseError, PresetNotFoundError
from rufio.config.schema import Check, EnsureChanged, EnsureCommands, When

logger = logging.getLogger(__name__)

PRESET_SUFFIX = ".yaml"
PRESETS_DIR_ENV = "RUFIO_PRESETS_DIR"


def _check(
    name: str,
    paths_changed: str,
    *,
    path_exists: str | None = None,
    ensure_commands: Iterable[str] = (),
    ensure_changed: Iterable[str] = (),
) -> Check:
    commands = tuple(ensure_commands)
    then: EnsureCommands | EnsureChanged
    if commands:
        then = EnsureCommands(commands=commands)
    else:
        then = EnsureChanged(paths=tuple(ensure_changed))
    return Check(name=name, when=When(paths_changed=paths_changed, path_exists=path_exists), then=then)


# ---------------------------------------------------------------------------
# Built-in presets
# ---------------------------------------------------------------------------

BUILTIN_PRESETS: dict[str, tuple[Check, ...]] = {
    "cargo": (
        _check(
            "cargo-checks",
            "**/*.rs",
            ensure_commands=["cargo test", "cargo fmt", "cargo clippy"],
        ),
        _check(
            "cargo-version-bump",
            "**/*.rs",
            path_exists="package.nix",
            ensure_changed=["version.toml"],
        ),
    ),
    "meow": (
        _check("meow-fmt", "**/*.md", ensure_commands=["meow fmt"]),
    ),
    "pnpm": (
        _check(
            "pnpm-checks",
            "**/*.ts",
            ensure_commands=["pnpm lint", "pnpm typecheck", "pnpm test"],
        ),
        _check(
            "pnpm-version-bump",
            "**/*.ts",
            path_exists="package.nix",
            ensure_changed=["version.toml"],
        ),
    ),
    "ledger": (
        _check(
            "ledger-checks",
            "**/*.ledger",
            ensure_commands=["hledger check", "folio validate"],
        ),
    ),
    "terraform": (
        _check(
            "terraform-checks",
            "**/*.tf",
            ensure_commands=["tofu fmt", "tflint", "trivy config ."],
        ),
    ),
}


def default_preset_dir() -> Path:
    """Return the user preset override directory from the environment."""
    explicit = os.environ.get(PRESETS_DIR_ENV)
    if explicit:
        return Path(explicit).expanduser()
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "rufio" / "presets"


class PresetResolver:
    """Expands preset names into checks.

    Parameters
    ----------
    preset_dir:
        Override directory.  When omitted it is read from the environment
        on every :meth:`resolve` call.
    builtins:
        Fallback table.  Defaults to :data:`BUILTIN_PRESETS`.
    """

    def __init__(
        self,
        preset_dir: Path | None = None,
        builtins: Mapping[str, Iterable[Check]] | None = None,
    ) -> None:
        self._preset_dir = preset_dir
        self._builtins = BUILTIN_PRESETS if builtins is None else builtins

    @property
    def preset_dir(self) -> Path:
        return self._preset_dir if self._preset_dir is not None else default_preset_dir()

    def preset_path(self, name: str) -> Path:
        """Return where an override file for *name* is looked up."""
        return self.preset_dir / f"{name}{PRESET_SUFFIX}"

    def available(self) -> list[str]:
        """Return all resolvable preset names, overrides and built-ins."""
        names = set(self._builtins)
        directory = self.preset_dir
        if directory.is_dir():
            names.update(p.stem for p in directory.glob(f"*{PRESET_SUFFIX}"))
        return sorted(names)

    def resolve(
        self,
        names: Iterable[str],
        config_path: str | Path | None = None,
    ) -> list[Check]:
        """Expand *names* into a flat list of checks, in order.

        Raises
        ------
        PresetNotFoundError
            When a name resolves neither to an override file nor a built-in.
        ConfigParseError
            When an override file is not a valid preset document.
        """
        checks: list[Check] = []
        for name in names:
            checks.extend(self.resolve_one(name, config_path))
        return checks

    def resolve_one(self, name: str, config_path: str | Path | None = None) -> list[Check]:
        """Expand a single preset name."""
        path = self.preset_path(name)
        if path.is_file():
            logger.debug("Preset '%s' resolved from %s", name, path)
            return self._load_file(path)

        builtin = self._builtins.get(name)
        if builtin is not None:
            logger.debug("Preset '%s' resolved from built-ins", name)
            return list(builtin)

        raise PresetNotFoundError(name, path, config_path)

    def _load_file(self, path: Path) -> list[Check]:
        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigParseError(f"preset is not valid YAML: {exc}", path) from exc
        except UnicodeDecodeError as exc:
            raise ConfigParseError(f"preset is not valid UTF-8 text: {exc}", path) from exc

        if not isinstance(raw, Mapping):
            raise ConfigParseError("preset must be a mapping with a 'checks' list", path)
        raw_checks = raw.get("checks") or []
        if not isinstance(raw_checks, list):
            raise ConfigParseError("preset 'checks' must be a list", path)

        checks: list[Check] = []
        for item in raw_checks:
            if not isinstance(item, Mapping):
                raise ConfigParseError("each preset check must be a mapping", path)
            checks.append(Check.from_raw(item, path))
        return checks
