from __future__ import annotations

"""Policy decisions for capability invocations.

``PolicyEngine`` is the runtime authority the step executor consults before
dispatching any capability other than the scratchpad built-ins.

Rules are checked in order:

1. exact-name deny list: a match denies regardless of the arguments;
2. argument patterns: the first pattern found in the serialized arguments
   denies, and the pattern is reported as the reason.

Anything else is allowed with a default reason. Evaluation is pure and never
raises for a well-formed request.
"""

import logging
import re
from typing import Optional

from ..errors import PolicyConfigError
from ..schemas.domain import PolicyEffect, PolicyRequest, PolicyResult
from .models import PolicyConfig

logger = logging.getLogger(__name__)

DEFAULT_ALLOW_REASON = "Approved by default policy"


class PolicyEngine:
    """Evaluate capability invocations against a ``PolicyConfig``.

    The engine copies the configuration on construction; runtime additions
    through ``deny_tool`` and ``deny_arguments`` only affect this instance.
    """

    def __init__(self, config: Optional[PolicyConfig] = None) -> None:
        self._cfg = (config or PolicyConfig()).model_copy(deep=True)
        self._denied_tools = set(self._cfg.denied_tools)
        self._patterns = list(self._cfg.compiled_patterns)

    @property
    def config(self) -> PolicyConfig:
        """Return the configuration including any runtime additions."""
        return PolicyConfig(
            denied_tools=sorted(self._denied_tools),
            denied_argument_patterns=[p.pattern for p in self._patterns],
        )

    def deny_tool(self, name: str) -> None:
        """Refuse every future invocation of ``name``."""
        self._denied_tools.add(name)

    def deny_arguments(self, pattern: str) -> None:
        """
        Append an argument deny pattern.

        Raises:
            PolicyConfigError: If ``pattern`` is not a valid regular expression.
        """
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise PolicyConfigError(pattern, str(e)) from e
        self._patterns.append(compiled)

    def evaluate(self, request: PolicyRequest) -> PolicyResult:
        """
        Decide whether a capability invocation may proceed.

        Args:
            request: The capability name, its serialized arguments and the owner.

        Returns:
            A ``PolicyResult`` whose ``effect`` is ``allow`` or ``deny``.
        """
        if request.capability in self._denied_tools:
            reason = f"Tool '{request.capability}' is restricted by system policy"
            logger.info("Policy denied %s for owner %s: %s", request.capability, request.owner_id, reason)
            return PolicyResult(effect=PolicyEffect.deny, reason=reason)

        for pattern in self._patterns:
            if pattern.search(request.arguments):
                reason = f"Arguments match restricted pattern: {pattern.pattern}"
                logger.info("Policy denied %s for owner %s: %s", request.capability, request.owner_id, reason)
                return PolicyResult(effect=PolicyEffect.deny, reason=reason)

        return PolicyResult(effect=PolicyEffect.allow, reason=DEFAULT_ALLOW_REASON)
