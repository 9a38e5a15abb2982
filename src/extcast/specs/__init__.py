"""Specification layer — extension capabilities contributed by plugins.

Collects specification descriptors from providers, merges them into one
conflict-free registry, and exposes a read-only catalog.
"""

from extcast.specs.builtin import BUILTIN_SPECS, builtin_provider
from extcast.specs.models import ExtensionDependency, ExtensionSpecification
from extcast.specs.provider import (
    SpecificationProvider,
    StaticProvider,
    collect_specifications,
    load_provider,
    load_providers,
)
from extcast.specs.registry import SpecificationRegistry

__all__ = [
    "BUILTIN_SPECS",
    "ExtensionDependency",
    "ExtensionSpecification",
    "SpecificationProvider",
    "SpecificationRegistry",
    "StaticProvider",
    "builtin_provider",
    "collect_specifications",
    "load_provider",
    "load_providers",
]
