"""Check evaluation package for rufio."""
from __future__ import annotations

from rufio.checks.runner import CheckResult, CheckRunner, evaluate, run_checks

__all__ = [
    "CheckResult",
    "CheckRunner",
    "evaluate",
    "run_checks",
]
