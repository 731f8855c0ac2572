"""In-memory dispatch sink for tests and local development.

Calls are recorded synchronously, at the moment the router forwards
them, and complete asynchronously::

    sink = RecordingSink()
    state = typeproxy.create(TodoState)
    state.dispatch_sink = sink
    state.add_item("milk")
    assert sink.calls == [SinkCall("dispatch_async", ("add_item", "milk"))]
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class SinkCall:
    """One forwarded call: sink method name plus its arguments."""

    method: str
    args: tuple[Any, ...] = ()


@dataclass
class RecordingSink:
    """A :class:`~typeproxy.contract.DispatchSink` that remembers everything.

    Attributes:
        calls: Every forwarded call, in order.
        completed: Calls whose pending operation has finished.
        error: If set, every pending operation raises it on completion.
        gate: If set, pending operations wait for this event first.
    """

    calls: list[SinkCall] = field(default_factory=list)
    completed: list[SinkCall] = field(default_factory=list)
    error: BaseException | None = None
    gate: asyncio.Event | None = None

    def notify_change(self, name: str, value: Any) -> Any:
        return self._record("notify_change", name, value)

    def dispatch_async(self, command: Any, payload: Any = None) -> Any:
        if isinstance(command, Mapping):
            return self._record("dispatch_async", command)
        return self._record("dispatch_async", command, payload)

    def dispose_async(self) -> Any:
        return self._record("dispose_async")

    def calls_to(self, method: str) -> list[SinkCall]:
        return [c for c in self.calls if c.method == method]

    def clear(self) -> None:
        self.calls.clear()
        self.completed.clear()

    def _record(self, method: str, *args: Any) -> Any:
        call = SinkCall(method, args)
        self.calls.append(call)
        return self._complete(call)

    async def _complete(self, call: SinkCall) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.completed.append(call)
