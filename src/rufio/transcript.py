"""Session transcript indexing.

A host transcript is a list of messages, each holding ``parts``.  Tool
invocations are parts of type ``"tool"``::

    {
        "type": "tool",
        "tool": "bash",
        "state": {"status": "completed", "input": {"command": "pnpm test"}},
    }

:func:`extract_tool_events` turns those parts into :class:`ToolEvent`
records with strictly increasing positions.  Only ``completed`` and
``running`` invocations are indexed; pending ones have not yet produced an
observable fact.  Every indexed invocation consumes a position, including
tools rufio does not recognise, so positions preserve the true order of
the session.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

_OBSERVABLE_STATUSES: frozenset[str] = frozenset({"completed", "running"})
_ROUTING_PREFIX = "mcp_"

_COMMAND_TOOLS: frozenset[str] = frozenset({"bash"})
_EDIT_TOOLS: frozenset[str] = frozenset({"edit"})
_WRITE_TOOLS: frozenset[str] = frozenset({"write"})


class EventKind(str, Enum):
    """Classification of an indexed tool invocation."""

    COMMAND = "command"
    EDIT = "edit"
    WRITE = "write"
    OTHER = "other"


@dataclass(frozen=True)
class ToolEvent:
    """One observed tool invocation.

    ``command`` is set only for :attr:`EventKind.COMMAND` events and
    ``file_path`` only for edit/write events; either may be ``None`` when
    the invocation input did not carry it.
    """

    index: int
    kind: EventKind
    tool_name: str
    command: str | None = None
    file_path: str | None = None

    @property
    def is_file_change(self) -> bool:
        return self.kind in (EventKind.EDIT, EventKind.WRITE)


def normalize_tool_name(tool: str) -> str:
    """Lower-case *tool* and strip an ``mcp_`` routing prefix."""
    name = tool.lower()
    if name.startswith(_ROUTING_PREFIX) and len(name) > len(_ROUTING_PREFIX):
        name = name[len(_ROUTING_PREFIX):]
    return name


def extract_tool_events(messages: Iterable[Mapping[str, object]]) -> list[ToolEvent]:
    """Index every tool part across *messages*, in order of appearance."""
    parts: list[Mapping[str, object]] = []
    for message in messages:
        message_parts = message.get("parts") or []
        if isinstance(message_parts, list):
            parts.extend(p for p in message_parts if isinstance(p, Mapping))
    return index_tool_parts(parts)


def index_tool_parts(parts: Iterable[Mapping[str, object]]) -> list[ToolEvent]:
    """Index a flat sequence of parts; non-tool parts are ignored."""
    events: list[ToolEvent] = []
    for part in parts:
        if part.get("type") != "tool":
            continue
        event = _to_event(part, len(events))
        if event is not None:
            events.append(event)
    logger.debug("Indexed %d tool events", len(events))
    return events


def _to_event(part: Mapping[str, object], index: int) -> ToolEvent | None:
    state = part.get("state")
    if not isinstance(state, Mapping) or state.get("status") not in _OBSERVABLE_STATUSES:
        return None

    raw_name = str(part.get("tool", ""))
    name = normalize_tool_name(raw_name)
    tool_input = state.get("input")
    if not isinstance(tool_input, Mapping):
        tool_input = {}

    if name in _COMMAND_TOOLS:
        return ToolEvent(
            index=index,
            kind=EventKind.COMMAND,
            tool_name="Bash",
            command=_str_or_none(tool_input.get("command")),
        )
    if name in _EDIT_TOOLS:
        return ToolEvent(
            index=index,
            kind=EventKind.EDIT,
            tool_name="Edit",
            file_path=_file_path(tool_input),
        )
    if name in _WRITE_TOOLS:
        return ToolEvent(
            index=index,
            kind=EventKind.WRITE,
            tool_name="Write",
            file_path=_file_path(tool_input),
        )
    return ToolEvent(index=index, kind=EventKind.OTHER, tool_name=name.capitalize())


def _file_path(tool_input: Mapping[str, object]) -> str | None:
    value = tool_input.get("filePath")
    if value is None:
        value = tool_input.get("file_path")
    return _str_or_none(value)


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def find_last_edit_index(
    events: Iterable[ToolEvent],
    file_matcher: Callable[[str], bool],
) -> int:
    """Return the index of the last edit/write whose path satisfies *file_matcher*.

    Returns ``-1`` when no such event exists.
    """
    last = -1
    for event in events:
        if event.is_file_change and event.file_path and file_matcher(event.file_path):
            last = event.index
    return last


def was_command_run_after(
    events: Iterable[ToolEvent],
    patterns: Iterable[str],
    after_index: int,
) -> bool:
    """Return ``True`` if a command containing any of *patterns* ran after *after_index*.

    Matching is substring containment: ``"cargo test"`` is satisfied by
    ``"cargo test --all"``.
    """
    wanted = list(patterns)
    for event in events:
        if event.kind is not EventKind.COMMAND or not event.command:
            continue
        if event.index <= after_index:
            continue
        if any(pattern in event.command for pattern in wanted):
            return True
    return False


def edited_paths(events: Iterable[ToolEvent]) -> list[str]:
    """Return the file paths of all edit/write events, in order."""
    return [e.file_path for e in events if e.is_file_change and e.file_path]
