"""Configuration error taxonomy.

Every error raised while reading, decoding or validating a
``rufio-hooks.yaml`` document (or a preset it references) derives from
:class:`RufioConfigError`.  These errors are fatal to the load of the
affected configuration: nothing from a malformed document is applied.

A failing check is *not* an error; see :class:`rufio.checks.runner.CheckResult`.
"""
from __future__ import annotations

from pathlib import Path


class RufioConfigError(ValueError):
    """Raised when a policy document cannot be loaded.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | Path | None = None) -> None:
        self.config_path = str(config_path) if config_path is not None else None
        self.detail = message
        prefix = f"Invalid config at {self.config_path}: " if self.config_path else ""
        super().__init__(f"{prefix}{message}")


class ConfigParseError(RufioConfigError):
    """The document text is not valid YAML or does not have the expected shape."""


class NoChecksDefinedError(RufioConfigError):
    """The document resolves to zero checks."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        super().__init__("no checks defined (add 'presets' or 'checks')", config_path)


class MissingNameError(RufioConfigError):
    """A locally declared check has no ``name``."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        super().__init__("check missing 'name'", config_path)


class MissingTriggerError(RufioConfigError):
    """A locally declared check has no ``when.paths_changed`` glob."""

    def __init__(self, check_name: str, config_path: str | Path | None = None) -> None:
        self.check_name = check_name
        super().__init__(f"check '{check_name}' missing 'when.paths_changed'", config_path)


class MissingObligationError(RufioConfigError):
    """A locally declared check has neither obligation kind."""

    def __init__(self, check_name: str, config_path: str | Path | None = None) -> None:
        self.check_name = check_name
        super().__init__(
            f"check '{check_name}' must have 'then.ensure_commands' or 'then.ensure_changed'",
            config_path,
        )


class ConflictingObligationError(RufioConfigError):
    """A locally declared check has both obligation kinds."""

    def __init__(self, check_name: str, config_path: str | Path | None = None) -> None:
        self.check_name = check_name
        super().__init__(
            f"check '{check_name}' cannot have both 'then.ensure_commands' and 'then.ensure_changed'",
            config_path,
        )


class PresetNotFoundError(RufioConfigError):
    """A referenced preset exists neither in the override directory nor built in.

    Attributes
    ----------
    name:
        The preset name as written in the document.
    expected_path:
        Where an override file for the preset would have been read from.
    """

    def __init__(
        self,
        name: str,
        expected_path: str | Path,
        config_path: str | Path | None = None,
    ) -> None:
        self.name = name
        self.expected_path = str(expected_path)
        super().__init__(
            f"preset '{name}' not found at {self.expected_path}",
            config_path,
        )
