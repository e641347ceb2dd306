from __future__ import annotations

"""Capability registry.

The registry maps a capability name to its descriptor. The step executor uses
it to:

- build the manifest offered to the reasoning service, filtered by the
  current step's whitelist,
- validate a loosely typed argument blob against the capability's declared
  schema, turning a mismatch into a typed ``CapabilityArgumentsError``,
- dispatch the invocation.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ValidationError
from pydantic_ai.tools import ToolDefinition

from ..errors import CapabilityArgumentsError, CapabilityNotFoundError
from .base import Capability, CapabilityContext, CapabilityResult, FailureKind

logger = logging.getLogger(__name__)

ArgumentsBlob = Union[str, Mapping[str, Any], None]


class CapabilityRegistry:
    """
    In-memory mapping of capability names to implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the capability name.
        - ``get`` raises ``CapabilityNotFoundError`` (a ``KeyError``) if the capability is missing.
        - ``invoke`` never raises for capability failures; it returns a failed ``CapabilityResult``.
    """

    def __init__(self) -> None:
        self._caps: Dict[str, Capability] = {}

    def register(self, cap: Capability) -> None:
        """
        Register a capability implementation.

        Args:
            cap: The capability instance to register. It must expose ``name``,
                ``description`` and ``args_model``.
        """
        self._caps[cap.name] = cap

    def get(self, name: str) -> Capability:
        """
        Retrieve a registered capability by name.

        Raises:
            CapabilityNotFoundError: If no capability is registered with the given name.
        """
        try:
            return self._caps[name]
        except KeyError:
            raise CapabilityNotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._caps

    def names(self) -> List[str]:
        return list(self._caps)

    def describe(self, name: str) -> ToolDefinition:
        cap = self.get(name)
        return ToolDefinition(
            name=cap.name,
            description=cap.description,
            parameters_json_schema=cap.args_model.model_json_schema(),
        )

    def manifest(
        self,
        whitelist: Optional[Iterable[str]] = None,
        *,
        builtins: Sequence[ToolDefinition] = (),
    ) -> List[ToolDefinition]:
        """
        Build the tool manifest offered to the reasoning service.

        Args:
            whitelist: Capability names allowed for the current step. ``None``
                offers every registered capability; an empty whitelist offers none.
            builtins: Definitions that are always offered (the scratchpad pair).

        Returns:
            Tool definitions in registration order followed by the built-ins.
        """
        allowed = None if whitelist is None else set(whitelist)
        tools: List[ToolDefinition] = []
        for name in self._caps:
            if allowed is not None and name not in allowed:
                continue
            tools.append(self.describe(name))
        if allowed is not None:
            missing = allowed.difference(self._caps)
            if missing:
                logger.debug("Whitelisted capabilities not registered: %s", sorted(missing))

        offered = {t.name for t in tools}
        tools.extend(b for b in builtins if b.name not in offered)
        return tools

    def validate(self, name: str, arguments: ArgumentsBlob) -> BaseModel:
        """
        Validate an argument blob against the capability's declared schema.

        Args:
            name: Capability name.
            arguments: JSON text, an already-decoded mapping, or ``None`` for no arguments.

        Raises:
            CapabilityNotFoundError: If the capability is unknown.
            CapabilityArgumentsError: If the arguments do not match the schema.
        """
        cap = self.get(name)
        try:
            if isinstance(arguments, str):
                return cap.args_model.model_validate_json(arguments or "{}")
            return cap.args_model.model_validate(dict(arguments or {}))
        except ValidationError as e:
            raise CapabilityArgumentsError(name, _summarize_validation(e)) from e

    async def invoke(self, name: str, arguments: ArgumentsBlob, ctx: CapabilityContext) -> CapabilityResult:
        """
        Validate and dispatch one capability invocation.

        Returns:
            A successful result carrying the capability's text, or a failed result
            whose ``failure`` tells the caller whether a retry makes sense.
        """
        if not self.has(name):
            return CapabilityResult.failed(FailureKind.not_found, f"Error: Tool {name} not found")

        try:
            args = self.validate(name, arguments)
        except CapabilityArgumentsError as e:
            return CapabilityResult.failed(FailureKind.invalid_arguments, f"Error: {e}", error=e)

        try:
            text = await self._caps[name].execute(ctx, args=args)
        except Exception as e:
            return CapabilityResult.failed(FailureKind.execution, f"Error: {e}", error=e)
        return CapabilityResult(text=text)


def _summarize_validation(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)
