"""Check runner — evaluates policy checks against a session.

For each governing config (in the order its first changed file was seen)
and each of its checks (in document order) the runner:

1. skips the check when ``when.path_exists`` is set and absent on disk
2. skips it when no changed file matches ``when.paths_changed``
3. finds the last edit/write in the session to a matching path, and skips
   the check when the session never touched one
4. verifies the obligation:

   - ``ensure_commands``: each command must appear (as a substring) in a
     command run strictly after that edit
   - ``ensure_changed``: any one of the paths must have been edited at any
     point in the session

The first failing check stops evaluation; its message is the result.
Callers re-run after each fix, so one actionable failure is reported at
a time.

Example
-------
>>> runner = CheckRunner()
>>> result = runner.run(["src/app.ts"], events, Path("/repo"))
>>> result.error
"Check 'biome' failed: these commands must run after editing **/*.ts: biome check"
"""
from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from rufio.config.discovery import group_files_by_config
from rufio.config.loader import ConfigLoader
from rufio.config.schema import Check, EnsureChanged, EnsureCommands, LoadedConfig
from rufio.patterns import matches, relative_to_base
from rufio.transcript import (
    ToolEvent,
    edited_paths,
    extract_tool_events,
    find_last_edit_index,
    was_command_run_after,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of running checks.

    ``error`` is ``None`` when nothing failed; otherwise it is the
    remediation message and ``check_name`` names the failing check.
    """

    error: str | None = None
    check_name: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None


PASSED = CheckResult()


class CheckRunner:
    """Runs all applicable checks for a set of changed files.

    Parameters
    ----------
    loader:
        Optional :class:`ConfigLoader` override (for testing or for a
        non-default preset directory).
    """

    def __init__(self, loader: ConfigLoader | None = None) -> None:
        self._loader = loader or ConfigLoader()

    def run(
        self,
        changed_files: Sequence[str],
        events: Sequence[ToolEvent],
        repo_root: str | Path,
    ) -> CheckResult:
        """Return the first failing check across all governing configs.

        Parameters
        ----------
        changed_files:
            Paths relative to *repo_root*.
        events:
            The session's indexed tool events, in chronological order.
        repo_root:
            Repository root; configs above it are never consulted.

        Raises
        ------
        RufioConfigError
            When a governing config is malformed.
        """
        root = Path(os.path.abspath(repo_root))
        groups = group_files_by_config(list(changed_files), root, self._loader)

        for group in groups.values():
            result = self.run_config(group.loaded, group.files, events, root)
            if not result.passed:
                logger.info("Check '%s' failed for %s", result.check_name, group.loaded.config_path)
                return result

        return PASSED

    def run_config(
        self,
        loaded: LoadedConfig,
        changed_files: Sequence[str],
        events: Sequence[ToolEvent],
        repo_root: Path,
    ) -> CheckResult:
        """Run every check of one config against its files."""
        for check in loaded.config.checks:
            result = self.run_check(check, loaded, changed_files, events, repo_root)
            if not result.passed:
                return result
        return PASSED

    def run_check(
        self,
        check: Check,
        loaded: LoadedConfig,
        changed_files: Sequence[str],
        events: Sequence[ToolEvent],
        repo_root: Path,
    ) -> CheckResult:
        """Run a single check."""
        config_dir = loaded.config_dir
        pattern = check.when.paths_changed

        if check.when.path_exists:
            required = config_dir / check.when.path_exists
            if not required.exists():
                logger.debug("Check '%s' skipped: %s does not exist", check.name, required)
                return PASSED

        matching = [
            file
            for file in changed_files
            if _matches_under(repo_root / file, config_dir, pattern)
        ]
        if not matching:
            logger.debug("Check '%s' skipped: no changed file matches %s", check.name, pattern)
            return PASSED

        last_edit = find_last_edit_index(
            events,
            lambda path: _matches_under(_absolute(path, repo_root), config_dir, pattern),
        )
        if last_edit == -1:
            logger.debug("Check '%s' skipped: no matching edit this session", check.name)
            return PASSED

        logger.debug("Check '%s' triggered by edit at position %d", check.name, last_edit)
        if isinstance(check.then, EnsureCommands):
            return _check_commands(check, check.then, events, last_edit)
        if isinstance(check.then, EnsureChanged):
            return _check_changed(check, check.then, events, config_dir, repo_root)
        return PASSED


def _check_commands(
    check: Check,
    obligation: EnsureCommands,
    events: Sequence[ToolEvent],
    last_edit: int,
) -> CheckResult:
    missing = [
        command
        for command in obligation.commands
        if not was_command_run_after(events, [command], last_edit)
    ]
    if not missing:
        return PASSED

    error = (
        f"Check '{check.name}' failed: these commands must run after editing "
        f"{check.when.paths_changed}: {', '.join(missing)}"
    )
    return CheckResult(error=error, check_name=check.name)


def _check_changed(
    check: Check,
    obligation: EnsureChanged,
    events: Sequence[ToolEvent],
    config_dir: Path,
    repo_root: Path,
) -> CheckResult:
    touched = {_absolute(path, repo_root) for path in edited_paths(events)}
    for required in obligation.paths:
        if _absolute(required, config_dir) in touched:
            return PASSED

    error = (
        f"Check '{check.name}' failed: one of these files must be changed when editing "
        f"{check.when.paths_changed}: {', '.join(obligation.paths)}"
    )
    return CheckResult(error=error, check_name=check.name)


def _absolute(path: str | Path, base: Path) -> Path:
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = base / candidate
    return Path(os.path.abspath(candidate))


def _matches_under(path: Path, config_dir: Path, pattern: str) -> bool:
    relative = relative_to_base(path, config_dir)
    if relative is None:
        return False
    return matches(relative, pattern)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def run_checks(
    changed_files: Sequence[str],
    events: Sequence[ToolEvent],
    repo_root: str | Path,
    loader: ConfigLoader | None = None,
) -> str | None:
    """Run checks and return the first failure message, or ``None``."""
    return CheckRunner(loader).run(changed_files, events, repo_root).error


def evaluate(
    changed_files: Sequence[str],
    messages: Iterable[Mapping[str, object]],
    repo_root: str | Path,
    loader: ConfigLoader | None = None,
) -> str | None:
    """Index a raw transcript and run checks against it.

    Parameters
    ----------
    changed_files:
        Paths relative to *repo_root* that differ from the baseline.
    messages:
        Host transcript messages, each with a ``parts`` list.
    repo_root:
        Repository root.

    Returns
    -------
    str | None
        The first failure message, or ``None`` when every applicable check
        passes.
    """
    if not changed_files:
        return None
    events = extract_tool_events(messages)
    return run_checks(changed_files, events, repo_root, loader)
