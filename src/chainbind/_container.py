from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from ._registry import MISSING, InstanceCache, Lifetime, Registration, RegistrationStore
from ._resolver import ResolutionError, Resolver


if TYPE_CHECKING:
    from collections.abc import Callable


logger = logging.getLogger(__name__)


def _check_identifier(identifier: object) -> None:
    if identifier is None:
        msg = "An identifier is required."
        raise ValueError(msg)

    if not isinstance(identifier, str):
        msg = f"Identifiers must be strings, got {type(identifier).__name__}"
        raise TypeError(msg)

    if not identifier:
        msg = "Identifiers must not be empty."
        raise ValueError(msg)


class Container:
    """Dependency injection container keyed by string identifiers.

    - register classes or zero-argument factories
    - lifetimes: singleton / transient
    - constructor injection driven by each class' ``CONSTRUCTOR_ARGUMENTS`` list
    - dependency cycles are broken with lazy references.
    """

    def __init__(self) -> None:
        self._registrations = RegistrationStore()
        self._instances = InstanceCache()
        self._resolver = Resolver(self._registrations, self._instances)
        self._lock = threading.RLock()

    def register_singleton(
        self,
        factory: Callable[[], object] | None = None,
        *,
        identifier: str,
        implementation: type | None = None,
    ) -> None:
        """Register a service built once and shared by every request.

        Example:
          container.register_singleton(identifier="IFoo", implementation=Foo)
          container.register_singleton(lambda: {"foo": "bar"}, identifier="config")

        """
        self._register(Lifetime.SINGLETON, factory, identifier, implementation)

    def register_transient(
        self,
        factory: Callable[[], object] | None = None,
        *,
        identifier: str,
        implementation: type | None = None,
    ) -> None:
        """Register a service built anew on every request."""
        self._register(Lifetime.TRANSIENT, factory, identifier, implementation)

    def get(self, identifier: str) -> Any:
        """Resolve ``identifier`` to an instance, building its dependencies first.

        Raises ``ResolutionError`` when the service or one of its dependencies is not
        registered, or has nothing to build it with. Exceptions raised by the
        service's own constructor or factory propagate unchanged.
        """
        _check_identifier(identifier)

        with self._lock:
            instance = self._resolver.resolve(identifier)

        if instance is MISSING:
            msg = "The service wasn't found in the registry."
            raise ResolutionError(msg, identifier=identifier)

        return instance

    def has(self, identifier: str) -> bool:
        """Return True if ``identifier`` is registered, whether or not it was built yet."""
        _check_identifier(identifier)

        with self._lock:
            return identifier in self._registrations

    def _register(
        self,
        lifetime: Lifetime,
        factory: Callable[[], object] | None,
        identifier: str,
        implementation: type | None,
    ) -> None:
        _check_identifier(identifier)

        if factory is not None and implementation is not None:
            msg = "Provide either `factory` or `implementation`, not both."
            raise ValueError(msg)

        registration = Registration(identifier, lifetime, implementation=implementation, factory=factory)

        with self._lock:
            self._registrations.add(registration)

        logger.debug("Registered %s service %r", lifetime.value, identifier)


_default_container: Container | None = None
_default_lock = threading.Lock()


def default_container() -> Container:
    """Return the process-wide container, creating it on first use."""
    global _default_container  # noqa: PLW0603

    with _default_lock:
        if _default_container is None:
            _default_container = Container()
        return _default_container
