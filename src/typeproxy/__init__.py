"""typeproxy: runtime-synthesized objects for declarative contracts.

Usage:
    from typing import Annotated
    import typeproxy
    from typeproxy import Contract, Watch

    class TodoState(Contract):
        title: Annotated[str, Watch]
        done_count: int

        def add_item(self, text: str) -> None: ...

    state = typeproxy.create(TodoState)
    state.dispatch_sink = host_sink    # anything implementing DispatchSink
    state.title = "groceries"          # -> host_sink.notify_change("title", "groceries")
    state.add_item("milk")             # -> host_sink.dispatch_async("add_item", "milk")
    typeproxy.serialize(state)         # '{"title":"groceries","done_count":0}'
"""

from typeproxy.contract import Contract, DispatchSink, Watch
from typeproxy.errors import ContractError, InvalidDispatchArgument, SinkUnavailable, TypeProxyError
from typeproxy.factory import ProxyFactory, ProxyObject, contract_of, create, is_proxy, proxy_type
from typeproxy.introspect import ContractInfo, MethodDescriptor, MethodKind, PropertyDescriptor, default_for, introspect
from typeproxy.relay import Relay, RelayConfig
from typeproxy.serialization import deserialize, from_dict, serialize, to_dict
from typeproxy.value_store import ValueStore

__all__ = [
    "Contract",
    "DispatchSink",
    "Watch",
    "TypeProxyError",
    "SinkUnavailable",
    "InvalidDispatchArgument",
    "ContractError",
    "ProxyFactory",
    "ProxyObject",
    "create",
    "proxy_type",
    "contract_of",
    "is_proxy",
    "ContractInfo",
    "PropertyDescriptor",
    "MethodDescriptor",
    "MethodKind",
    "introspect",
    "default_for",
    "Relay",
    "RelayConfig",
    "ValueStore",
    "serialize",
    "deserialize",
    "to_dict",
    "from_dict",
]
__version__ = "0.1.0"
