"""Zellij tab status indicator.

While an agent session works, the tab named after the project is
prefixed with a braille spinner frame.  A full block marks a session
waiting on the user and a small square marks a finished one.  The tab is
renamed through the ``rename-tab`` zellij pipe plugin, matched by name
suffix so it works across zellij sessions.
"""
from __future__ import annotations

import json
import logging
import os
import subprocess
from collections.abc import Callable, Sequence
from enum import Enum

from rufio.plugin.session import SessionContext

logger = logging.getLogger(__name__)

SPINNER_FRAMES: tuple[str, ...] = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
ASKING_CHAR = "⣿"
DONE_CHAR = "⠶"

_IGNORED_NAME = "tmp"

CommandRunner = Callable[[Sequence[str]], object]


class TabState(str, Enum):
    """Session states shown on the tab."""

    ACTIVE = "active"
    ASKING = "asking"
    STOPPED = "stopped"


def derive_name_from_cwd(cwd: str, home: str | None = None) -> str | None:
    """Derive a short tab name from a working directory.

    - ``~/.meow/trees/<branch>/...`` gives the branch name
    - ``~/src/<category>/<project>/...`` gives the project name, or the
      category when there is no project component
    - anything else gives the last path component

    A name of ``tmp`` (or no name at all) yields ``None``.
    """
    home = os.environ.get("HOME", "") if home is None else home

    trees_prefix = f"{home}/.meow/trees/"
    if cwd.startswith(trees_prefix):
        branch = cwd[len(trees_prefix):].split("/")[0]
        return _usable(branch)

    src_prefix = f"{home}/src/"
    if cwd.startswith(src_prefix):
        parts = cwd[len(src_prefix):].split("/")
        if len(parts) >= 2:
            if parts[1] == _IGNORED_NAME:
                return None
            if parts[1]:
                return parts[1]
        return _usable(parts[0])

    components = [c for c in cwd.split("/") if c]
    return _usable(components[-1]) if components else None


def _usable(name: str) -> str | None:
    if not name or name == _IGNORED_NAME:
        return None
    return name


def _run_quietly(argv: Sequence[str]) -> object:
    return subprocess.run(list(argv), capture_output=True, check=True, timeout=10)


class TabStatusUpdater:
    """Renames the session's zellij tab to reflect its state.

    Parameters
    ----------
    runner:
        Callable executing an argv list.  Defaults to a quiet
        :func:`subprocess.run`.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self._runner = runner or _run_quietly

    @staticmethod
    def in_zellij() -> bool:
        return bool(os.environ.get("ZELLIJ"))

    def prefix_for(self, state: TabState, context: SessionContext) -> str:
        """Return the tab prefix for *state*, updating the spinner in *context*."""
        if state is TabState.ACTIVE:
            return SPINNER_FRAMES[context.advance_spinner(len(SPINNER_FRAMES))]
        if state is TabState.ASKING:
            return ASKING_CHAR
        context.reset_spinner()
        return DONE_CHAR

    def update(self, state: TabState, cwd: str, context: SessionContext) -> bool:
        """Rename the tab for *cwd*.  Returns ``True`` when a rename was sent."""
        name = derive_name_from_cwd(cwd)
        if not name:
            logger.debug("zellij: no name derived from cwd=%s, skipping", cwd)
            return False

        prefix = self.prefix_for(state, context)
        payload = json.dumps({"match_suffix": name, "name": f"{prefix} {name}"})
        logger.debug("zellij: updating tab state=%s name=%r", state.value, f"{prefix} {name}")

        try:
            self._runner(["zellij", "pipe", "--name", "rename-tab", "--", payload])
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("zellij: rename failed: %s", exc)
            return False
        return True
