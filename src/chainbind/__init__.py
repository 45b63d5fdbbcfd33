"""Explicit-identifier dependency injection.

This package provides a small dependency injection runtime: services are
registered under string identifiers and resolved into fully constructed object
graphs, with singleton caching and lazy references that break dependency cycles.

Exports:
- `Container`: Registers singleton/transient services and resolves them with `get`.
- `ResolutionError`: Raised when a service or one of its dependencies cannot be built.
- `CONSTRUCTOR_ARGUMENTS`: Class attribute listing the identifiers to inject, in
  constructor parameter order (`None` skips a parameter).
- `constructor_arguments`: Class decorator that sets `CONSTRUCTOR_ARGUMENTS`.
- `default_container`: Opt-in process-wide container, created on first access.
- `LazyReference`: Handle injected in place of a service that is still being
  built when dependencies form a cycle; forwards attribute access once it exists.
"""

from ._container import Container, default_container
from ._registry import CONSTRUCTOR_ARGUMENTS, constructor_arguments
from ._resolver import LazyReference, ResolutionError


__all__ = [
    "CONSTRUCTOR_ARGUMENTS",
    "Container",
    "LazyReference",
    "ResolutionError",
    "constructor_arguments",
    "default_container",
]
