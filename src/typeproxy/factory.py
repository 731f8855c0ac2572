"""Runtime synthesis of contract instances.

For every contract the factory builds one adapter class (lazily, cached
for the life of the process) whose members all delegate to a
:class:`~typeproxy.router.CallRouter`:

* each declared property becomes a :class:`PropertyAccessor` data
  descriptor that already knows its :class:`PropertyDescriptor`, so a
  read or write is classified without scanning the contract;
* each declared method becomes a stub that binds its arguments against
  the declared signature and forwards the call.

Instances of the adapter class get a fresh value store and router, with
an empty ``dispatch_sink`` slot.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, TypeVar

from typeproxy.errors import ContractError
from typeproxy.introspect import ContractInfo, MethodDescriptor, PropertyDescriptor, introspect
from typeproxy.relay import Relay
from typeproxy.router import CallRouter, Invocation, InvocationKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProxyObject:
    """Base class of every generated adapter class."""

    __slots__ = ("_router",)

    __contract__: type
    __contract_info__: ContractInfo

    def __init__(self, router: CallRouter) -> None:
        self._router = router

    @property
    def dispatch_sink(self) -> Any:
        """The attached sink, or ``None``.  Held weakly; never encoded."""
        return self._router.sink

    @dispatch_sink.setter
    def dispatch_sink(self, sink: Any) -> None:
        self._router.attach(sink)

    def __repr__(self) -> str:
        values = " ".join(
            f"{name}={value!r}" for name, value in self._router.store.snapshot().items()
        )
        return f"<{type(self).__name__} {values}>" if values else f"<{type(self).__name__}>"


class PropertyAccessor:
    """Getter/setter entry point for one declared property."""

    __slots__ = ("descriptor", "_get")

    def __init__(self, descriptor: PropertyDescriptor) -> None:
        self.descriptor = descriptor
        self._get = Invocation(InvocationKind.GET, descriptor)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance._router.intercept(self._get)

    def __set__(self, instance: Any, value: Any) -> None:
        instance._router.intercept(Invocation(InvocationKind.SET, self.descriptor, (value,)))

    def __delete__(self, instance: Any) -> None:
        raise AttributeError(f"contract property '{self.descriptor.name}' cannot be deleted")


def _method_stub(method: MethodDescriptor, qualname: str) -> Callable[..., Any]:
    signature = method.signature

    def stub(self: ProxyObject, *args: Any, **kwargs: Any) -> Any:
        bound = signature.bind(*args, **kwargs)
        invocation = Invocation(
            InvocationKind.CALL,
            method,
            bound.args + tuple(bound.kwargs.values()),
        )
        return self._router.intercept(invocation)

    stub.__name__ = method.name
    stub.__qualname__ = f"{qualname}.{method.name}"
    return stub


# ---------------------------------------------------------------------------
# Adapter class registry
# ---------------------------------------------------------------------------

_proxy_types: dict[type, type] = {}
_proxy_types_lock = threading.Lock()


def proxy_type(contract: type) -> type:
    """Return the (cached) adapter class implementing *contract*."""
    cls = _proxy_types.get(contract)
    if cls is not None:
        return cls
    info = introspect(contract)
    with _proxy_types_lock:
        cls = _proxy_types.get(info.contract)
        if cls is None:
            cls = _build_proxy_type(info)
            _proxy_types[info.contract] = cls
            logger.debug("Generated adapter class %s", cls.__qualname__)
    return cls


def _build_proxy_type(info: ContractInfo) -> type:
    contract = info.contract
    qualname = f"{contract.__qualname__}Proxy"
    namespace: dict[str, Any] = {
        "__module__": contract.__module__,
        "__qualname__": qualname,
        "__doc__": contract.__doc__,
        "__contract__": contract,
        "__contract_info__": info,
    }
    for prop in info.properties:
        namespace[prop.name] = PropertyAccessor(prop)
    for method in info.methods:
        namespace[method.name] = _method_stub(method, qualname)
    # Use the contract's metaclass (ABCMeta unless customised)
    return type(contract)(f"{contract.__name__}Proxy", (ProxyObject, contract), namespace)


def is_proxy(obj: Any) -> bool:
    return isinstance(obj, ProxyObject)


def contract_of(obj: Any) -> type:
    """Return the contract a proxy instance implements."""
    if not is_proxy(obj):
        raise ContractError(f"{obj!r} is not a contract proxy")
    return type(obj).__contract__


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

class ProxyFactory:
    """Creates contract instances.

    Parameters
    ----------
    relay:
        Runs the pending operations of synchronous call sites.  Defaults
        to the process-wide relay.
    """

    def __init__(self, relay: Relay | None = None) -> None:
        self.relay = relay

    def create(self, contract: type[T]) -> T:
        """Return a new instance of *contract* with no sink attached."""
        cls = proxy_type(contract)
        router = CallRouter(cls.__contract_info__, relay=self.relay)
        return cls(router)


_default_factory = ProxyFactory()


def create(contract: type[T]) -> T:
    """Create a contract instance using the default factory."""
    return _default_factory.create(contract)
