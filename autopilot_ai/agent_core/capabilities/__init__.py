"""Capability descriptors and the registry that dispatches them by name."""

from .base import (
    Capability,
    CapabilityContext,
    CapabilityResult,
    FailureKind,
    FunctionCapability,
    NoArgs,
)
from .registry import CapabilityRegistry

__all__ = [
    "Capability",
    "CapabilityContext",
    "CapabilityRegistry",
    "CapabilityResult",
    "FailureKind",
    "FunctionCapability",
    "NoArgs",
]
