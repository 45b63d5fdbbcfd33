from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar


if TYPE_CHECKING:
    from collections.abc import Callable

    T = TypeVar("T")


logger = logging.getLogger(__name__)

# Class attribute holding the ordered dependency identifiers of a constructor.
# Entries are identifiers, or None for parameters that must not be injected.
CONSTRUCTOR_ARGUMENTS = "___CTOR_ARGS___"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Returned by lookups that found nothing; None is a valid instance.
MISSING: Any = _Missing()


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


class Provision(Enum):
    """How a registration builds its instance."""

    CLASS = "class"
    FACTORY = "factory"


def _provision_for(source: object | None) -> Provision | None:
    if inspect.isclass(source):
        return Provision.CLASS
    if callable(source):
        return Provision.FACTORY
    return None


@dataclass(frozen=True)
class Registration:
    identifier: str
    lifetime: Lifetime
    implementation: type | None = None
    factory: Callable[[], object] | None = None
    provision: Provision | None = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "provision", _provision_for(self.source))

    @property
    def source(self) -> object | None:
        return self.factory if self.factory is not None else self.implementation


class RegistrationStore:
    """Registrations and constructor argument lists keyed by identifier."""

    def __init__(self) -> None:
        self._records: dict[str, Registration] = {}
        self._arguments: dict[str, tuple[str | None, ...]] = {}

    def add(self, registration: Registration) -> None:
        # Factories build themselves; only implementations carry injectable arguments.
        arguments = read_constructor_arguments(registration.implementation)

        if registration.identifier in self._records:
            logger.debug("Replacing registration for %r", registration.identifier)

        self._records[registration.identifier] = registration
        self._arguments[registration.identifier] = arguments

    def get(self, identifier: str) -> Registration | None:
        return self._records.get(identifier)

    def arguments(self, identifier: str) -> tuple[str | None, ...]:
        return self._arguments.get(identifier, ())

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._records


class InstanceCache:
    """Constructed singletons keyed by identifier."""

    def __init__(self) -> None:
        self._instances: dict[str, object] = {}

    def get(self, identifier: str) -> Any:
        return self._instances.get(identifier, MISSING)

    def set(self, identifier: str, instance: object) -> Any:
        self._instances[identifier] = instance
        return instance


def read_constructor_arguments(implementation: object | None) -> tuple[str | None, ...]:
    """Return the constructor argument list exposed by ``implementation``.

    Missing metadata yields an empty tuple. Entries must be ``str`` or ``None``.
    """
    if implementation is None:
        return ()

    declared = getattr(implementation, CONSTRUCTOR_ARGUMENTS, None)
    if declared is None:
        return ()

    if isinstance(declared, str):
        msg = f"{CONSTRUCTOR_ARGUMENTS} must be a sequence of identifiers, not a single string ({declared!r})"
        raise TypeError(msg)

    arguments = tuple(declared)
    for position, argument in enumerate(arguments):
        if argument is not None and not isinstance(argument, str):
            msg = (
                f"Constructor argument {position} of {getattr(implementation, '__name__', implementation)!r} "
                f"must be an identifier string or None, got {type(argument).__name__}"
            )
            raise TypeError(msg)

    return arguments


def constructor_arguments(*identifiers: str | None) -> Callable[[type[T]], type[T]]:
    """Attach a constructor argument list to a class.

    Example:
      @constructor_arguments("db", None)
      class Repo:
          def __init__(self, db, timeout=5): ...

    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, CONSTRUCTOR_ARGUMENTS, list(identifiers))
        return cls

    return decorator
