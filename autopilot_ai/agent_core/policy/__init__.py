"""Policy subsystem gating every capability invocation.

The policy layer is evaluated by the step executor before a capability is
dispatched. It is deliberately separate from prompting so that a reasoning
model cannot talk its way past it.

Components
----------

- ``PolicyConfig``: exact-name deny list plus ordered argument deny patterns,
  compiled when the configuration is built.
- ``PolicyEngine``: pure ``evaluate(request) -> PolicyResult``.
"""

from .engine import PolicyEngine
from .models import PolicyConfig

__all__ = [
    "PolicyConfig",
    "PolicyEngine",
]
