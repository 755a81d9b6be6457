"""Host lifecycle hooks.

:class:`RufioHooks` receives host events and decides when to run checks.
When a session goes idle the hooks collect the changed files and the
session transcript, evaluate the governing checks and, on failure, hand
the message back to the host as a new prompt so the agent can fix it.

The host is anything implementing :class:`SessionHost`.

Example
-------
>>> hooks = RufioHooks(host, default_directory="/repo")
>>> hooks.on_event({"type": "session.idle", "properties": {"sessionID": "s1"}})
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Protocol

from rufio.checks.runner import CheckRunner
from rufio.config.errors import RufioConfigError
from rufio.plugin.git import list_changed_files
from rufio.plugin.session import SessionContext, SessionRegistry
from rufio.plugin.status import TabState, TabStatusUpdater
from rufio.transcript import extract_tool_events

logger = logging.getLogger(__name__)

ChangedFileLister = Callable[[str], Sequence[str]]


class SessionHost(Protocol):
    """The parts of the host API the hooks rely on."""

    def get_session_directory(self, session_id: str) -> str | None:
        """Return the working directory of *session_id*, if known."""

    def get_messages(self, session_id: str) -> Sequence[Mapping[str, object]] | None:
        """Return the transcript messages of *session_id*, or ``None`` on error."""

    def prompt(self, session_id: str, text: str) -> None:
        """Inject *text* as a new user prompt into *session_id*."""


class RufioHooks:
    """Event handlers wiring the check runner into a host.

    Parameters
    ----------
    host:
        The host API.
    default_directory:
        Directory used when the host cannot tell a session's directory.
    registry:
        Optional :class:`SessionRegistry` (shared or for testing).
    runner:
        Optional :class:`CheckRunner` override.
    list_changed:
        Callable returning changed paths for a directory.  Defaults to
        :func:`rufio.plugin.git.list_changed_files`.
    status:
        Optional :class:`TabStatusUpdater`.  When omitted, one is created
        only if the process runs inside zellij.
    """

    def __init__(
        self,
        host: SessionHost,
        default_directory: str | Path,
        registry: SessionRegistry | None = None,
        runner: CheckRunner | None = None,
        list_changed: ChangedFileLister | None = None,
        status: TabStatusUpdater | None = None,
    ) -> None:
        self._host = host
        self._default_directory = str(default_directory)
        self._registry = registry or SessionRegistry()
        self._runner = runner or CheckRunner()
        self._list_changed = list_changed or list_changed_files
        if status is None and TabStatusUpdater.in_zellij():
            status = TabStatusUpdater()
        self._status = status

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def on_event(self, event: Mapping[str, object]) -> str | None:
        """Dispatch a host event.

        Returns the injected failure message for ``session.idle`` events
        that failed a check, otherwise ``None``.
        """
        event_type = event.get("type")
        properties = event.get("properties")
        if not isinstance(properties, Mapping):
            properties = {}

        match event_type:
            case "session.idle":
                session_id = properties.get("sessionID")
                if isinstance(session_id, str):
                    return self.on_session_idle(session_id)
            case "session.status":
                session_id = properties.get("sessionID")
                status = properties.get("status")
                busy = isinstance(status, Mapping) and status.get("type") == "busy"
                if isinstance(session_id, str) and busy:
                    self._update_status(session_id, TabState.ACTIVE)
            case "permission.updated":
                session_id = properties.get("sessionID")
                if isinstance(session_id, str):
                    self._update_status(session_id, TabState.ASKING)
            case "session.deleted":
                info = properties.get("info")
                if isinstance(info, Mapping) and isinstance(info.get("id"), str):
                    self.on_session_deleted(str(info["id"]))
        return None

    def on_session_idle(self, session_id: str) -> str | None:
        """Run checks for *session_id* and prompt the host on failure."""
        context = self._registry.get(session_id)
        directory = self._session_directory(context)
        logger.info("session.idle: %s dir=%s", session_id, directory)

        error = self.run_stop_checks(session_id, directory)
        if error:
            self._host.prompt(session_id, error)
            self._update_status(session_id, TabState.ACTIVE)
            return error

        self._update_status(session_id, TabState.STOPPED)
        return None

    def on_session_deleted(self, session_id: str) -> None:
        """Tear down all state held for *session_id*."""
        self._registry.close(session_id)

    # ------------------------------------------------------------------
    # Check execution
    # ------------------------------------------------------------------

    def run_stop_checks(self, session_id: str, directory: str) -> str | None:
        """Return the first failing check message for the session, or ``None``.

        Configuration errors are reported as the message so the author
        sees them; they are never partially applied.
        """
        changed_files = list(self._list_changed(directory))
        logger.info("Changed files in %s: %s", directory, changed_files)
        if not changed_files:
            return None

        messages = self._host.get_messages(session_id)
        if messages is None:
            logger.warning("Transcript unavailable for session %s; skipping checks", session_id)
            return None

        events = extract_tool_events(messages)
        try:
            result = self._runner.run(changed_files, events, directory)
        except RufioConfigError as exc:
            logger.error("%s", exc)
            return str(exc)

        logger.info("Check result for session %s: %s", session_id, result.error or "passed")
        return result.error

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _session_directory(self, context: SessionContext) -> str:
        if context.directory:
            return context.directory
        try:
            directory = self._host.get_session_directory(context.session_id)
        except Exception as exc:  # host transport errors vary by host
            logger.warning(
                "Could not fetch directory for session %s: %s; using %s",
                context.session_id,
                exc,
                self._default_directory,
            )
            return self._default_directory
        if directory:
            context.directory = directory
            return directory
        return self._default_directory

    def _update_status(self, session_id: str, state: TabState) -> None:
        if self._status is None:
            return
        context = self._registry.get(session_id)
        self._status.update(state, context.directory or self._default_directory, context)
