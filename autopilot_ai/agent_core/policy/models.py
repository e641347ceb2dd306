from __future__ import annotations

"""Policy configuration model.

``PolicyConfig`` is a serializable, declarative description of which
capability invocations are refused. Patterns are compiled during validation,
so a malformed pattern is rejected when the configuration is built rather
than when a request is evaluated.
"""

import re
from typing import List, Pattern, Tuple

from pydantic import Field, PrivateAttr, field_validator

from autopilot_ai.core.config import DEFAULT_DENIED_ARGUMENT_PATTERNS

from ..schemas.base import BaseSchema


class PolicyConfig(BaseSchema):
    """
    Deny rules for capability invocations.

    Attributes:
        denied_tools: Capability names that are always refused, whatever the arguments.
        denied_argument_patterns: Regular expressions searched, in order, in the
            serialized arguments of every other invocation.
    """

    denied_tools: List[str] = Field(default_factory=list)
    denied_argument_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DENIED_ARGUMENT_PATTERNS)
    )

    _compiled: Tuple[Pattern[str], ...] = PrivateAttr(default=())

    @field_validator("denied_argument_patterns")
    @classmethod
    def _patterns_compile(cls, value: List[str]) -> List[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid pattern {pattern!r}: {e}") from e
        return value

    def model_post_init(self, __context: object) -> None:
        self._compiled = tuple(re.compile(p) for p in self.denied_argument_patterns)

    @property
    def compiled_patterns(self) -> Tuple[Pattern[str], ...]:
        return self._compiled
