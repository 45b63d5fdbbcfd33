import copy
import pickle

import pytest

from chainbind import Container, ResolutionError


class ServiceA: ...


class ServiceB:
    ___CTOR_ARGS___ = ["ServiceA"]

    def __init__(self, service_a):
        self.service_a = service_a


class ServiceC:
    ___CTOR_ARGS___ = ["ServiceB"]

    def __init__(self, service_b):
        self.service_b = service_b


def test_missing_direct_dependency_names_dependent():
    c = Container()
    c.register_singleton(identifier="ServiceB", implementation=ServiceB)

    with pytest.raises(ResolutionError) as ctx:
        c.get("ServiceB")

    err = ctx.value
    assert err.identifier == "ServiceB"
    assert err.parent_chain == ("ServiceB",)
    assert str(err) == (
        "Could not instantiate service: 'ServiceB': Dependency 'ServiceA' was not found in the service registry."
    )


def test_missing_transitive_dependency_reports_chain():
    c = Container()
    c.register_singleton(identifier="ServiceB", implementation=ServiceB)
    c.register_singleton(identifier="ServiceC", implementation=ServiceC)

    with pytest.raises(ResolutionError) as ctx:
        c.get("ServiceC")

    err = ctx.value
    assert err.identifier == "ServiceB"
    assert err.parent_chain == ("ServiceC", "ServiceB")
    assert str(err).endswith("Dependency chain: ServiceC -> ServiceB")


def test_missing_dependency_does_not_cache_dependents():
    c = Container()
    c.register_singleton(identifier="ServiceB", implementation=ServiceB)

    with pytest.raises(ResolutionError):
        c.get("ServiceB")

    c.register_singleton(identifier="ServiceA", implementation=ServiceA)
    assert isinstance(c.get("ServiceB").service_a, ServiceA)


def test_constructor_errors_are_not_wrapped():
    c = Container()

    class Exploding:
        ___CTOR_ARGS___ = ["ServiceA"]

        def __init__(self, service_a):
            msg = "This is unrelated error."
            raise ValueError(msg)

    c.register_singleton(identifier="ServiceA", implementation=ServiceA)
    c.register_singleton(identifier="Exploding", implementation=Exploding)

    with pytest.raises(ValueError, match="This is unrelated error.") as ctx:
        c.get("Exploding")

    assert type(ctx.value) is ValueError


def test_factory_errors_are_not_wrapped():
    c = Container()

    def explode():
        msg = "x"
        raise ValueError(msg)

    c.register_singleton(explode, identifier="ServiceA")

    with pytest.raises(ValueError, match="^x$") as ctx:
        c.get("ServiceA")

    assert type(ctx.value) is ValueError


def test_nested_constructor_errors_are_not_wrapped():
    c = Container()

    class Broken:
        def __init__(self):
            raise LookupError("deep")

    c.register_singleton(identifier="ServiceA", factory=None, implementation=Broken)
    c.register_singleton(identifier="ServiceB", implementation=ServiceB)
    c.register_singleton(identifier="ServiceC", implementation=ServiceC)

    with pytest.raises(LookupError, match="deep") as ctx:
        c.get("ServiceC")

    assert not isinstance(ctx.value, ResolutionError)


def test_error_without_chain_uses_identifier():
    err = ResolutionError("boom", identifier="A")
    assert err.parent_chain == ("A",)
    assert str(err) == "Could not instantiate service: 'A': boom"


def test_error_with_empty_message_omits_body():
    err = ResolutionError("", identifier="A")
    assert str(err) == "Could not instantiate service: 'A'"


def test_error_wraps_exception_message():
    cause = KeyError("gone")
    err = ResolutionError(cause, identifier="A", parent_chain=["Root", "A"])
    assert err.original_error is cause
    assert str(err) == "Could not instantiate service: 'A': 'gone' Dependency chain: Root -> A"


def test_nested_errors_reuse_root_cause():
    inner = ResolutionError("root cause", identifier="C", parent_chain=["B", "C"])
    outer = ResolutionError(inner, identifier="B", parent_chain=["A", "B"])

    assert outer.original_error == "root cause"
    assert str(outer) == "Could not instantiate service: 'B': root cause Dependency chain: A -> B"


def test_nested_errors_reuse_root_traceback():
    try:
        raise OSError("disk")
    except OSError as exc:
        root = exc

    inner = ResolutionError(root, identifier="B")
    outer = ResolutionError(inner, identifier="A")

    assert outer.original_error is root
    assert outer.__traceback__ is root.__traceback__


def test_resolution_error_is_runtime_error():
    assert issubclass(ResolutionError, RuntimeError)


def test_error_survives_copy_and_pickle():
    c = Container()
    c.register_singleton(identifier="ServiceB", implementation=ServiceB)
    c.register_singleton(identifier="ServiceC", implementation=ServiceC)

    with pytest.raises(ResolutionError) as ctx:
        c.get("ServiceC")

    err = ctx.value
    for clone in (copy.copy(err), copy.deepcopy(err), pickle.loads(pickle.dumps(err))):  # noqa: S301
        assert type(clone) is ResolutionError
        assert str(clone) == str(err)
        assert clone.identifier == "ServiceB"
        assert clone.parent_chain == ("ServiceC", "ServiceB")
        assert clone.original_error == err.original_error


def test_error_with_exception_cause_survives_pickle():
    err = ResolutionError(KeyError("gone"), identifier="A")
    clone = pickle.loads(pickle.dumps(err))  # noqa: S301

    assert isinstance(clone.original_error, KeyError)
    assert str(clone) == str(err)
