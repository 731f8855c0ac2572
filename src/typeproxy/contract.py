"""Declarative contract building blocks.

A contract is a class that only *describes* state and commands::

    class TodoState(Contract):
        title: Annotated[str, Watch]
        done_count: int
        tags: list[str]

        def add_item(self, text: str) -> None: ...
        async def clear(self) -> None: ...
        def Dispose(self) -> None: ...

It is never instantiated directly.  :func:`typeproxy.create` synthesizes
an object that satisfies it and routes every member access either to a
local value store or to a :class:`DispatchSink`.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Awaitable, Mapping, Protocol, Union, runtime_checkable


class Watch:
    """Property marker: writes are forwarded to the sink as change notifications.

    Use it as ``Annotated`` metadata, either the class itself or an
    instance: ``title: Annotated[str, Watch]``.
    """

    def __repr__(self) -> str:
        return "Watch"


def is_watch_marker(obj: Any) -> bool:
    return obj is Watch or isinstance(obj, Watch)


@runtime_checkable
class DispatchSink(Protocol):
    """The host-side collaborator that receives forwarded calls.

    Every operation returns a pending completion (any awaitable).  Plain
    return values are accepted too and treated as already completed.
    """

    def notify_change(self, name: str, value: Any) -> Union[Awaitable[Any], Any]:
        ...

    def dispatch_async(
        self,
        command: Union[str, Mapping[str, Any]],
        payload: Any = None,
    ) -> Union[Awaitable[Any], Any]:
        ...

    def dispose_async(self) -> Union[Awaitable[Any], Any]:
        ...


class Contract(ABC):
    """Base class for all contracts.

    Subclass it and declare properties as annotations (or ``@property``
    stubs) and methods as stubs.  Abstract members are allowed; the
    generated proxy implements all of them.
    """

    __slots__ = ()

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> Any:
        from typeproxy.serialization import contract_core_schema

        return contract_core_schema(cls, handler)
