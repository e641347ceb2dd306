"""System prompt providers for the planner and the step executor.

Prompts are addressed by a stable key (``planner/system``, ``worker/system``)
and may contain ``{{NAME}}`` placeholders filled in by ``render_prompt``.
Two providers are shipped:

- ``BuiltinPromptProvider``: terse in-repo prompts so the engine runs
  without any prompt bundle.
- ``DirectoryPromptProvider``: markdown files from a directory. ``planner.md``
  is the planner prompt; every other ``.md`` file is concatenated into the
  worker prompt, persona files first.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

PLANNER_PROMPT = "planner/system"
WORKER_PROMPT = "worker/system"

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Z0-9_]+)\s*\}\}")


@runtime_checkable
class PromptProvider(Protocol):
    """Protocol for prompt providers.

    ``get`` raises ``KeyError`` for an unknown prompt. ``version`` returns a
    short identifier suitable for logs; it never exposes prompt text.
    """

    def get(self, name: str) -> str: ...

    def version(self) -> str: ...

    def refresh(self) -> None: ...


_BUILTIN_PROMPTS: Dict[str, str] = {
    PLANNER_PROMPT: (
        "You are the planner of an autonomous agent working for user {{OWNER_ID}}.\n"
        "Break the user's goal into a short ordered plan and submit it with the `propose_plan` tool. "
        "Give every step an integer id, a description, a status (pending, completed or failed) "
        "and the list of tools it needs, chosen only from the available tools below.\n"
        "After each step runs you receive a brief summary; full details are in the scratchpad, "
        "which you can read with `read_scratchpad`. Update the plan to reflect progress. "
        "Once every step is completed, answer the user directly in plain text, not as a tool call.\n"
    ),
    WORKER_PROMPT: (
        "You are a worker executing step {{STEP_ID}} of task {{TASK_ID}} for user {{OWNER_ID}}.\n"
        "Use the tools you were given to complete the step. Save complete raw data with "
        "`write_scratchpad` and read earlier results with `read_scratchpad`. If a tool is refused "
        "or fails, adapt or explain why. When the step is done, reply with a plain-text result."
    ),
}


def render_prompt(template: str, values: Mapping[str, object]) -> str:
    """Substitute ``{{NAME}}`` placeholders; unknown names are left untouched."""

    def _sub(match: "re.Match[str]") -> str:
        key = match.group(1)
        return str(values[key]) if key in values else match.group(0)

    return _PLACEHOLDER.sub(_sub, template)


class BuiltinPromptProvider:
    """In-repo builtin prompts for basic/local usage."""

    def __init__(self, *, prompts: Optional[Dict[str, str]] = None, version_id: str = "builtin-v1") -> None:
        self._prompts = dict(prompts or _BUILTIN_PROMPTS)
        self._version = version_id

    def get(self, name: str) -> str:
        try:
            return self._prompts[name]
        except KeyError as exc:
            raise KeyError(f"prompt not found: name={name!r}") from exc

    def version(self) -> str:
        return self._version

    def refresh(self) -> None:
        """Builtin provider has no external state to refresh."""
        return None


class DirectoryPromptProvider:
    """Load prompts from markdown files in a directory.

    Files are read once and cached; ``refresh`` re-reads the directory. A
    missing ``planner.md`` or an empty worker bundle falls back to the
    builtin prompt for that key.
    """

    WORKER_ORDER = ("identity.md", "soul.md", "capabilities.md", "worker_directive.md", "user.md")
    SEPARATOR = "\n\n---\n\n"

    def __init__(self, directory: str | Path, *, fallback: Optional[PromptProvider] = None) -> None:
        self._dir = Path(directory)
        self._fallback = fallback or BuiltinPromptProvider()
        self._cache: Dict[str, str] = {}
        self.refresh()

    def _sort_key(self, path: Path) -> tuple[int, str]:
        try:
            return (self.WORKER_ORDER.index(path.name), path.name)
        except ValueError:
            return (len(self.WORKER_ORDER), path.name)

    def refresh(self) -> None:
        cache: Dict[str, str] = {}
        if not self._dir.is_dir():
            logger.warning("Prompt directory %s does not exist; using builtin prompts", self._dir)
            self._cache = cache
            return

        planner = self._dir / "planner.md"
        if planner.is_file():
            cache[PLANNER_PROMPT] = planner.read_text(encoding="utf-8")

        worker_files = sorted(
            (p for p in self._dir.glob("*.md") if p.is_file() and p.name != "planner.md"),
            key=self._sort_key,
        )
        if worker_files:
            cache[WORKER_PROMPT] = self.SEPARATOR.join(p.read_text(encoding="utf-8") for p in worker_files)
        self._cache = cache
        logger.debug("Loaded %d prompt(s) from %s", len(cache), self._dir)

    def get(self, name: str) -> str:
        if name in self._cache:
            return self._cache[name]
        return self._fallback.get(name)

    def version(self) -> str:
        return f"dir:{self._dir.name}:{len(self._cache)}"
