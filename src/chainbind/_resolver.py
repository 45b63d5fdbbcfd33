from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._registry import MISSING, Lifetime, Provision


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ._registry import InstanceCache, Registration, RegistrationStore


logger = logging.getLogger(__name__)

_UNSET: Any = object()


class ResolutionError(RuntimeError):
    """A service, or one of its dependencies, could not be instantiated.

    Raised for unregistered identifiers and for registrations without a usable
    implementation. Errors raised by user constructors and factories are never
    wrapped in this type.

    ``error`` is either a message or the exception that caused the failure. When
    it is itself a ``ResolutionError``, the innermost original error is reused so
    nested failures do not stack wrapper messages.
    """

    def __init__(
        self,
        error: str | BaseException,
        *,
        identifier: str,
        parent_chain: Iterable[str | ParentLink] | None = None,
    ) -> None:
        root = error
        while isinstance(root, ResolutionError):
            root = root.original_error

        chain = tuple(item if isinstance(item, str) else item.identifier for item in parent_chain or ())

        self.identifier = identifier
        self.original_error: str | BaseException = root
        self.parent_chain: tuple[str, ...] = chain or (identifier,)

        super().__init__(self._format())

        if isinstance(root, BaseException) and root.__traceback__ is not None:
            self.__traceback__ = root.__traceback__

    def __reduce__(self) -> tuple[Any, ...]:
        # args only holds the formatted message; rebuild from the keyword state.
        return (_rebuild_error, (type(self), self.original_error, self.identifier, self.parent_chain))

    @property
    def root_message(self) -> str:
        return self.original_error if isinstance(self.original_error, str) else str(self.original_error)

    def _format(self) -> str:
        head = f"Could not instantiate service: '{self.parent_chain[-1]}'"
        body = f": {self.root_message}" if self.root_message else ""
        tail = f" Dependency chain: {' -> '.join(self.parent_chain)}" if len(self.parent_chain) > 1 else ""
        return f"{head}{body}{tail}"


def _rebuild_error(
    cls: type[ResolutionError],
    error: str | BaseException,
    identifier: str,
    parent_chain: tuple[str, ...],
) -> ResolutionError:
    return cls(error, identifier=identifier, parent_chain=parent_chain)


class LazyReference:
    """Stand-in for a service that is still being constructed.

    Attribute reads and writes are forwarded to the finished instance. Touching
    one before the instance exists raises ``AttributeError``: consumers in a cycle
    must defer access until the whole graph is built (e.g. into a later method
    call). Operators and builtins like ``len()`` are not forwarded.
    """

    # Mangled so no attribute of the target can be shadowed by the reference.
    __slots__ = ("__identifier", "__pointer")

    def __init__(self, identifier: str, pointer: Callable[[], object]) -> None:
        object.__setattr__(self, "_LazyReference__identifier", identifier)
        object.__setattr__(self, "_LazyReference__pointer", pointer)

    def __getattr__(self, name: str) -> Any:
        target = self.__pointer()
        if target is _UNSET:
            msg = f"Service '{self.__identifier}' is still under construction; cannot read '{name}' yet"
            raise AttributeError(msg)
        return getattr(target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        target = self.__pointer()
        if target is _UNSET:
            msg = f"Service '{self.__identifier}' is still under construction; cannot set '{name}' yet"
            raise AttributeError(msg)
        setattr(target, name, value)

    def __repr__(self) -> str:
        target = self.__pointer()
        if target is _UNSET:
            return f"<LazyReference to {self.__identifier!r} (unresolved)>"
        return f"<LazyReference to {self.__identifier!r}: {target!r}>"


@dataclass(frozen=True)
class ParentLink:
    identifier: str
    ref: LazyReference


class Resolver:
    """Builds instances from a registration store, caching singletons."""

    def __init__(self, registrations: RegistrationStore, instances: InstanceCache) -> None:
        self._registrations = registrations
        self._instances = instances

    def resolve(self, identifier: str, parent_chain: tuple[ParentLink, ...] = ()) -> Any:
        """Return an instance for ``identifier``, or ``MISSING`` if it is not registered.

        ``parent_chain`` holds the services currently being built above this one.
        A dependency already in the chain receives that ancestor's lazy reference
        instead of being built again, which terminates any cycle.
        """
        reg = self._registrations.get(identifier)
        if reg is None:
            return MISSING

        if reg.lifetime == Lifetime.SINGLETON:
            cached = self._instances.get(identifier)
            if cached is not MISSING:
                return cached

        instance: Any = _UNSET
        me = ParentLink(identifier, LazyReference(identifier, lambda: instance))

        instance = self._build(reg, me, parent_chain)

        if reg.lifetime == Lifetime.SINGLETON:
            return self._instances.set(identifier, instance)

        return instance

    def _build(self, reg: Registration, me: ParentLink, parent_chain: tuple[ParentLink, ...]) -> Any:
        source = reg.source

        if reg.provision is Provision.FACTORY:
            logger.debug("Calling factory for %r", reg.identifier)
            return source()

        if reg.provision is Provision.CLASS:
            args = self._resolve_arguments(reg.identifier, source, me, parent_chain)
            logger.debug("Constructing %s for %r", getattr(source, "__name__", source), reg.identifier)
            return source(*args)

        msg = "No implementation was given!"
        raise ResolutionError(msg, identifier=reg.identifier, parent_chain=(*parent_chain, me))

    def _resolve_arguments(
        self,
        identifier: str,
        cls: type,
        me: ParentLink,
        parent_chain: tuple[ParentLink, ...],
    ) -> list[Any]:
        args: list[Any] = []
        next_chain = (*parent_chain, me)

        for position, dep in enumerate(self._registrations.arguments(identifier)):
            if dep is None:
                args.append(_skipped_argument(cls, position))
                continue

            ancestor = next((parent for parent in parent_chain if parent.identifier == dep), None)
            if ancestor is not None:
                args.append(ancestor.ref)
                continue

            value = self.resolve(dep, next_chain)
            if value is MISSING:
                msg = f"Dependency '{dep}' was not found in the service registry."
                raise ResolutionError(msg, identifier=identifier, parent_chain=next_chain)

            args.append(value)

        return args


def _skipped_argument(cls: type, position: int) -> Any:
    """Value for a parameter that is not injected: its default, else None."""
    try:
        params = [
            p
            for p in inspect.signature(cls).parameters.values()
            if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        ]
    except (TypeError, ValueError):
        return None

    if position < len(params) and params[position].default is not inspect.Parameter.empty:
        return params[position].default

    return None
