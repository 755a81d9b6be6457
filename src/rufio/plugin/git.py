"""Changed-file listing via ``git status``."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_GIT_STATUS = ["git", "status", "--porcelain", "-uall"]


def parse_porcelain(output: str) -> list[str]:
    """Extract paths from ``git status --porcelain`` output.

    The two-character status and its separator are dropped.  For renames
    (``R  old -> new``) the new path is kept.
    """
    files: list[str] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        path = line[3:].strip()
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
            path = path[1:-1]
        if path:
            files.append(path)
    return files


def list_changed_files(cwd: str | Path, timeout: float = 30.0) -> list[str]:
    """Return paths (relative to the repository top level) that differ from ``HEAD``.

    Any git failure yields an empty list: with no changed-file data there
    is nothing to check.
    """
    try:
        completed = subprocess.run(
            _GIT_STATUS,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("git status failed in %s: %s", cwd, exc)
        return []
    return parse_porcelain(completed.stdout)
