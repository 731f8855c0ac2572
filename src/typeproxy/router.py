"""Call routing for synthesized contract instances.

Every property read, property write and method call on a proxy arrives
here as an :class:`Invocation`.  The router answers reads from the value
store and turns writes of watched properties and all method calls into
dispatch sink operations:

================  ===================================================
Property get      ``ValueStore.get(name)``; never touches the sink
Property set      ``ValueStore.set``, then ``notify_change(name, value)``
                  if the property is watched
``Dispose*``      ``dispose_async()``
``Dispatch*``     ``dispatch_async(mapping)``; the single argument must
                  be a ``str``-keyed mapping
other methods     ``dispatch_async(name, first_argument_or_None)``
================  ===================================================

Methods declared asynchronous return the sink's pending operation;
synchronous ones hand it to the :class:`~typeproxy.relay.Relay` and
return ``None``.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Union

from typeproxy.errors import InvalidDispatchArgument, SinkUnavailable
from typeproxy.introspect import ContractInfo, MethodDescriptor, MethodKind, PropertyDescriptor
from typeproxy.relay import Relay, as_awaitable, default_relay
from typeproxy.value_store import ValueStore

logger = logging.getLogger(__name__)


class InvocationKind(Enum):
    GET = "get"
    SET = "set"
    CALL = "call"


@dataclass(frozen=True)
class Invocation:
    """One intercepted member access."""

    kind: InvocationKind
    member: Union[PropertyDescriptor, MethodDescriptor]
    args: tuple[Any, ...] = ()


class CallRouter:
    """Routes the invocations of a single proxy instance."""

    def __init__(
        self,
        info: ContractInfo,
        store: ValueStore | None = None,
        relay: Relay | None = None,
    ) -> None:
        self.info = info
        self.store = store if store is not None else ValueStore(info.defaults())
        self._relay = relay
        self._sink_ref: Callable[[], Any] | None = None

    # ------------------------------------------------------------------
    # Sink slot
    # ------------------------------------------------------------------

    @property
    def sink(self) -> Any:
        """The attached dispatch sink, or ``None``."""
        return self._sink_ref() if self._sink_ref is not None else None

    def attach(self, sink: Any) -> None:
        """Attach (or replace, or with ``None`` clear) the dispatch sink.

        The sink is held weakly when it supports weak references.
        """
        if sink is None:
            self._sink_ref = None
            return
        try:
            self._sink_ref = weakref.ref(sink)
        except TypeError:
            self._sink_ref = lambda: sink

    @property
    def relay(self) -> Relay:
        if self._relay is None:
            self._relay = default_relay()
        return self._relay

    # ------------------------------------------------------------------
    # Interception
    # ------------------------------------------------------------------

    def intercept(self, invocation: Invocation) -> Any:
        if invocation.kind is InvocationKind.GET:
            return self.store.get(invocation.member.name)
        if invocation.kind is InvocationKind.SET:
            self._set_property(invocation.member, invocation.args[0])
            return None
        return self._call_method(invocation.member, invocation.args)

    def _set_property(self, prop: PropertyDescriptor, value: Any) -> None:
        self.store.set(prop.name, value)
        if not prop.watched:
            return
        sink = self._require_sink(prop.name)
        logger.debug("notify_change(%r) on %s", prop.name, self.info.contract.__qualname__)
        self.relay.detach(sink.notify_change(prop.name, value))

    def _call_method(self, method: MethodDescriptor, args: tuple[Any, ...]) -> Any:
        if method.kind is MethodKind.DISPATCH:
            properties = _dispatch_mapping(method.name, args)
            sink = self._require_sink(method.name)
            logger.debug("%s -> dispatch_async(%d properties)", method.name, len(properties))
            pending = sink.dispatch_async(properties)
        elif method.kind is MethodKind.DISPOSE:
            sink = self._require_sink(method.name)
            logger.debug("%s -> dispose_async()", method.name)
            pending = sink.dispose_async()
        else:
            sink = self._require_sink(method.name)
            # Commands carry a single payload; extra arguments are dropped
            payload = args[0] if args else None
            logger.debug("dispatch_async(%r) on %s", method.name, self.info.contract.__qualname__)
            pending = sink.dispatch_async(method.name, payload)

        if method.is_async:
            return as_awaitable(pending)
        self.relay.detach(pending)
        return None

    def _require_sink(self, member: str) -> Any:
        sink = self.sink
        if sink is None:
            raise SinkUnavailable(
                f"{self.info.contract.__qualname__}.{member} needs a dispatch sink, "
                "but none has been attached"
            )
        return sink


def _dispatch_mapping(method_name: str, args: tuple[Any, ...]) -> Mapping[str, Any]:
    if len(args) == 1 and isinstance(args[0], Mapping) and all(isinstance(k, str) for k in args[0]):
        return args[0]
    raise InvalidDispatchArgument(
        f"'{method_name}' is a reserved method that requires a single argument "
        "mapping property names to values"
    )
