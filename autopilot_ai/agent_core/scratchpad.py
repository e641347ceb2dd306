"""Per-task scratchpad used to hand data from one plan step to the next.

The planner only sees a truncated summary of each step's result; the full
text goes to the scratchpad, and both the planner and the step executor may
read it back through the built-in ``read_scratchpad`` / ``write_scratchpad``
tools. A scratchpad is created when a task starts and discarded when it ends.
Writes always append.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from typing import Dict, List, Protocol

from pydantic import Field
from pydantic_ai.tools import ToolDefinition

from .schemas.base import BaseSchema

logger = logging.getLogger(__name__)

READ_SCRATCHPAD = "read_scratchpad"
WRITE_SCRATCHPAD = "write_scratchpad"
SCRATCHPAD_TOOLS = frozenset({READ_SCRATCHPAD, WRITE_SCRATCHPAD})

EMPTY_SCRATCHPAD = "Scratchpad is empty or doesn't exist yet."
WORKER_DATA_HEADING = "Worker Data"


class ScratchpadWriteArgs(BaseSchema):
    content: str = Field(
        description="The full data to append to the scratchpad. Include all raw details, names, values, and sources."
    )


def scratchpad_tool_definitions() -> List[ToolDefinition]:
    """The built-in pair offered to every step regardless of its whitelist."""
    return [
        read_scratchpad_definition(),
        ToolDefinition(
            name=WRITE_SCRATCHPAD,
            description=(
                "Append detailed data to the task scratchpad for future steps to use. Use this to save "
                "the FULL, UNTRUNCATED output from your tools. Do not summarize, write everything."
            ),
            parameters_json_schema=ScratchpadWriteArgs.model_json_schema(),
        ),
    ]


def read_scratchpad_definition() -> ToolDefinition:
    return ToolDefinition(
        name=READ_SCRATCHPAD,
        description="Read the current task scratchpad to see details from previous steps.",
        parameters_json_schema={"type": "object", "properties": {}},
    )


def format_entry(heading: str, text: str) -> str:
    return f"\n#### {heading}:\n{text}\n"


class Scratchpad(Protocol):
    """Append-only text store keyed by task id."""

    def open(self, task_id: str, request: str) -> None:
        """Start a fresh scratchpad for a task, recording the initial request."""
        ...

    def read(self, task_id: str) -> str:
        """Return the scratchpad text, or ``EMPTY_SCRATCHPAD`` if nothing was written."""
        ...

    def write(self, task_id: str, heading: str, text: str) -> int:
        """Append ``text`` under ``heading``; return the number of characters of ``text`` stored."""
        ...

    def discard(self, task_id: str) -> None:
        """Drop the scratchpad of a finished task."""
        ...


def _header(request: str) -> str:
    return f"# Task Scratchpad\nInitial User Request: {request}\n"


class InMemoryScratchpad:
    """Scratchpad kept in process memory."""

    def __init__(self) -> None:
        self._pads: Dict[str, List[str]] = {}

    def open(self, task_id: str, request: str) -> None:
        self._pads[task_id] = [_header(request)]

    def read(self, task_id: str) -> str:
        blocks = self._pads.get(task_id)
        if not blocks:
            return EMPTY_SCRATCHPAD
        return "".join(blocks)

    def write(self, task_id: str, heading: str, text: str) -> int:
        self._pads.setdefault(task_id, []).append(format_entry(heading, text))
        return len(text)

    def discard(self, task_id: str) -> None:
        self._pads.pop(task_id, None)


class FileScratchpad:
    """Scratchpad stored as ``<directory>/scratchpad_<task_id>.md``.

    The file is deleted on ``discard``; pass ``keep=True`` to leave finished
    scratchpads on disk for inspection.
    """

    def __init__(self, directory: str | Path = "logs", *, keep: bool = False) -> None:
        self._dir = Path(directory)
        self._keep = keep
        self._lock = threading.Lock()

    def path(self, task_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", task_id)
        return self._dir / f"scratchpad_{safe}.md"

    def open(self, task_id: str, request: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self.path(task_id).write_text(_header(request), encoding="utf-8")

    def read(self, task_id: str) -> str:
        p = self.path(task_id)
        if not p.exists():
            return EMPTY_SCRATCHPAD
        text = p.read_text(encoding="utf-8")
        return text or EMPTY_SCRATCHPAD

    def write(self, task_id: str, heading: str, text: str) -> int:
        self._dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            with self.path(task_id).open("a", encoding="utf-8") as fh:
                fh.write(format_entry(heading, text))
        return len(text)

    def discard(self, task_id: str) -> None:
        if self._keep:
            return
        self.path(task_id).unlink(missing_ok=True)
        logger.debug("Discarded scratchpad for task %s", task_id)
