"""Per-session state for the host integration.

Hosts may run several agent sessions in one long-lived process.  Each
session gets its own :class:`SessionContext`; :class:`SessionRegistry`
creates contexts on first use and drops them on :meth:`SessionRegistry.close`
when the host reports the session deleted.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Mutable state belonging to a single session."""

    session_id: str
    directory: str | None = None
    spinner_frame: int = 0

    def advance_spinner(self, frame_count: int) -> int:
        """Return the current frame index and move to the next one."""
        current = self.spinner_frame
        self.spinner_frame = (current + 1) % frame_count
        return current

    def reset_spinner(self) -> None:
        self.spinner_frame = 0


class SessionRegistry:
    """Owns one :class:`SessionContext` per session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> SessionContext:
        """Return the context for *session_id*, creating it if needed."""
        with self._lock:
            context = self._sessions.get(session_id)
            if context is None:
                context = self._sessions[session_id] = SessionContext(session_id=session_id)
            return context

    def close(self, session_id: str) -> None:
        """Tear down *session_id*'s context.  Unknown ids are ignored."""
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.debug("Closed session context %s", session_id)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
