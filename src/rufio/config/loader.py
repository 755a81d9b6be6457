"""Policy document loader.

Reads a ``rufio-hooks.yaml`` document, expands its presets, appends its
local checks and validates the local checks.  The resolved rule order is
preset checks (in declaration order) followed by local checks.

Expected document structure::

    presets:
      - cargo
    checks:
      - name: biome
        when:
          paths_changed: "**/*.ts"
        then:
          ensure_commands:
            - biome check

Configs are re-read on every :meth:`ConfigLoader.load` call; nothing is
cached between calls.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load(Path("rufio-hooks.yaml"))
>>> [check.name for check in config.checks]
['cargo-checks', 'cargo-version-bump', 'biome']
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from rufio.config.errors import ConfigParseError, NoChecksDefinedError
from rufio.config.presets import PresetResolver
from rufio.config.schema import Check, RufioConfig
from rufio.config.validator import validate_check

logger = logging.getLogger(__name__)


@dataclass
class RawDocument:
    """A parsed but unresolved policy document."""

    presets: list[str] = field(default_factory=list)
    checks: list[Mapping[str, object]] = field(default_factory=list)


def parse_document(text: str, config_path: str | Path | None = None) -> RawDocument:
    """Parse YAML text into a :class:`RawDocument`.

    Raises
    ------
    ConfigParseError
        When the text is not YAML or the top-level shape is wrong.
    NoChecksDefinedError
        When the document lists neither presets nor checks.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigParseError(f"not valid YAML: {exc}", config_path) from exc

    if raw is None:
        raise NoChecksDefinedError(config_path)
    if not isinstance(raw, Mapping):
        raise ConfigParseError("top level must be a mapping", config_path)

    presets = raw.get("presets") or []
    if isinstance(presets, str):
        presets = [presets]
    if not isinstance(presets, list) or not all(isinstance(p, str) for p in presets):
        raise ConfigParseError("'presets' must be a list of names", config_path)

    checks = raw.get("checks") or []
    if not isinstance(checks, list):
        raise ConfigParseError("'checks' must be a list", config_path)
    for item in checks:
        if not isinstance(item, Mapping):
            raise ConfigParseError("each entry in 'checks' must be a mapping", config_path)

    if not presets and not checks:
        raise NoChecksDefinedError(config_path)

    return RawDocument(presets=list(presets), checks=list(checks))


class ConfigLoader:
    """Loads and resolves policy documents.

    Parameters
    ----------
    resolver:
        Optional :class:`PresetResolver` override (for testing or for a
        non-default preset directory).
    """

    def __init__(self, resolver: PresetResolver | None = None) -> None:
        self._resolver = resolver or PresetResolver()

    @property
    def resolver(self) -> PresetResolver:
        return self._resolver

    def load(self, config_path: str | Path) -> RufioConfig:
        """Load, resolve and validate a policy document from disk.

        Raises
        ------
        FileNotFoundError
            When the file does not exist.
        RufioConfigError
            For any parse, preset or validation problem.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Rufio config not found: {config_path}")

        try:
            text = config_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ConfigParseError(f"not valid UTF-8 text: {exc}", config_path) from exc
        config = self.load_string(text, config_path)
        logger.info("Loaded %d checks from %s", len(config.checks), config_path)
        return config

    def load_string(self, text: str, config_path: str | Path | None = None) -> RufioConfig:
        """Load, resolve and validate a policy document from YAML text."""
        document = parse_document(text, config_path)

        preset_checks = self._resolver.resolve(document.presets, config_path)

        # Local checks are validated before decoding so that errors name
        # the YAML key at fault.
        for raw_check in document.checks:
            validate_check(raw_check, config_path)
        local_checks = [Check.from_raw(raw, config_path) for raw in document.checks]

        merged = [*preset_checks, *local_checks]
        if not merged:
            raise NoChecksDefinedError(config_path)

        return RufioConfig(checks=tuple(merged))


def load_config(config_path: str | Path) -> RufioConfig:
    """Load *config_path* with a default :class:`ConfigLoader`."""
    return ConfigLoader().load(config_path)
