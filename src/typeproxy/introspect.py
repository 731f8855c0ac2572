"""Contract introspection.

Turns a :class:`~typeproxy.contract.Contract` subclass into an immutable
:class:`ContractInfo`: the ordered property and method descriptors the
call router needs.  Results are computed once per contract and kept in a
process-wide, append-only registry.
"""

from __future__ import annotations

import asyncio
import collections.abc
import inspect
import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Mapping, get_args, get_origin, get_type_hints

from typeproxy.contract import Contract, is_watch_marker
from typeproxy.errors import ContractError

logger = logging.getLogger(__name__)

# Attribute every proxy uses for its sink slot; contracts may not declare it.
SINK_SLOT = "dispatch_sink"

_NUMERIC_TYPES = (bool, int, float, complex, Decimal)
_AWAITABLE_TYPES = (collections.abc.Awaitable, asyncio.Future)


class MethodKind(Enum):
    COMMAND = "command"
    DISPATCH = "dispatch"
    DISPOSE = "dispose"


RESERVED_METHODS: dict[str, MethodKind] = {
    "Dispatch": MethodKind.DISPATCH,
    "DispatchAsync": MethodKind.DISPATCH,
    "Dispose": MethodKind.DISPOSE,
    "DisposeAsync": MethodKind.DISPOSE,
}


@dataclass(frozen=True)
class PropertyDescriptor:
    """A declared property: name, type (watch marker stripped), default."""

    name: str
    annotation: Any
    watched: bool = False
    default: Any = None


@dataclass(frozen=True)
class MethodDescriptor:
    """A declared method stub.

    ``signature`` excludes ``self`` and is used to bind call arguments.
    """

    name: str
    signature: inspect.Signature
    is_async: bool = False
    kind: MethodKind = MethodKind.COMMAND

    @property
    def arity(self) -> int:
        return sum(
            1
            for p in self.signature.parameters.values()
            if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        )


@dataclass(frozen=True)
class ContractInfo:
    """Introspection result for one contract class."""

    contract: type
    properties: tuple[PropertyDescriptor, ...]
    methods: tuple[MethodDescriptor, ...]
    _by_name: Mapping[str, Any] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        members: dict[str, Any] = {m.name: m for m in self.methods}
        members.update({p.name: p for p in self.properties})
        object.__setattr__(self, "_by_name", members)

    @property
    def property_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.properties)

    def member(self, name: str) -> PropertyDescriptor | MethodDescriptor | None:
        return self._by_name.get(name)

    def defaults(self) -> dict[str, Any]:
        return {p.name: p.default for p in self.properties}

    def describe(self) -> dict[str, Any]:
        """Return a JSON-friendly summary (used by ``python -m typeproxy``)."""
        return {
            "contract": f"{self.contract.__module__}.{self.contract.__qualname__}",
            "properties": [
                {
                    "name": p.name,
                    "type": _type_name(p.annotation),
                    "watched": p.watched,
                    "default": p.default if not isinstance(p.default, (complex, Decimal)) else str(p.default),
                }
                for p in self.properties
            ],
            "methods": [
                {
                    "name": m.name,
                    "arity": m.arity,
                    "async": m.is_async,
                    "kind": m.kind.value,
                }
                for m in self.methods
            ],
        }


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_registry: dict[type, ContractInfo] = {}
_registry_lock = threading.Lock()


def is_contract(obj: Any) -> bool:
    """True for contract classes (generated proxy classes excluded)."""
    return (
        isinstance(obj, type)
        and issubclass(obj, Contract)
        and obj is not Contract
        and "__contract__" not in vars(obj)
    )


def introspect(contract: type) -> ContractInfo:
    """Return the cached :class:`ContractInfo` for *contract*.

    Generated proxy classes resolve to the contract they implement.
    """
    contract = getattr(contract, "__contract__", contract)
    info = _registry.get(contract)
    if info is not None:
        return info
    with _registry_lock:
        info = _registry.get(contract)
        if info is None:
            info = _build_info(contract)
            _registry[contract] = info
            logger.debug(
                "Introspected %s: %d properties, %d methods",
                contract.__qualname__,
                len(info.properties),
                len(info.methods),
            )
    return info


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

def default_for(annotation: Any) -> Any:
    """Return the zero value for a declared type.

    Numeric types (bool included) give ``T()``; text, sequences, mappings,
    optionals, enums and nested contracts give ``None``.
    """
    tp = _unwrap(annotation)
    if get_origin(tp) is not None or not isinstance(tp, type):
        return None
    if issubclass(tp, _NUMERIC_TYPES) and not issubclass(tp, Enum):
        return tp()
    return None


def _unwrap(tp: Any) -> Any:
    while True:
        if get_origin(tp) is Annotated:
            tp = get_args(tp)[0]
            continue
        supertype = getattr(tp, "__supertype__", None)  # typing.NewType
        if supertype is not None:
            tp = supertype
            continue
        return tp


def _split_watch(hint: Any) -> tuple[Any, bool]:
    if get_origin(hint) is not Annotated:
        return hint, False
    inner, *metadata = get_args(hint)
    kept = [m for m in metadata if not is_watch_marker(m)]
    watched = len(kept) != len(metadata)
    if not kept:
        return inner, watched
    return Annotated[(inner, *kept)], watched


# ---------------------------------------------------------------------------
# Member discovery
# ---------------------------------------------------------------------------

def _build_info(contract: type) -> ContractInfo:
    if not is_contract(contract):
        raise ContractError(f"{contract!r} is not a Contract subclass")

    try:
        hints = get_type_hints(contract, include_extras=True)
    except NameError as exc:
        raise ContractError(f"Cannot resolve annotations of {contract.__qualname__}: {exc}") from exc

    properties: dict[str, PropertyDescriptor] = {}
    methods: dict[str, MethodDescriptor] = {}

    for klass in reversed(contract.__mro__):
        if not issubclass(klass, Contract) or klass is Contract:
            continue
        for name in inspect.get_annotations(klass):
            if _is_private(name) or name not in hints or get_origin(hints[name]) is ClassVar:
                continue
            if inspect.isfunction(getattr(klass, name, None)):
                continue
            properties[name] = _property(name, hints[name])
        for name, attr in vars(klass).items():
            if _is_private(name):
                continue
            if isinstance(attr, property):
                properties[name] = _property(name, _property_hint(attr.fget))
            elif inspect.isfunction(attr):
                methods[name] = _method(contract, name, attr)

    for name in (*properties, *methods):
        if name == SINK_SLOT:
            raise ContractError(
                f"{contract.__qualname__} declares '{SINK_SLOT}', which is reserved for the sink slot"
            )

    return ContractInfo(
        contract=contract,
        properties=tuple(properties.values()),
        methods=tuple(methods.values()),
    )


def _is_private(name: str) -> bool:
    return name.startswith("_")


def _property(name: str, hint: Any) -> PropertyDescriptor:
    annotation, watched = _split_watch(hint)
    return PropertyDescriptor(
        name=name,
        annotation=annotation,
        watched=watched,
        default=default_for(annotation),
    )


def _method(contract: type, name: str, fn: Any) -> MethodDescriptor:
    sig = inspect.signature(fn)
    params = list(sig.parameters.values())
    if not params or params[0].kind not in (params[0].POSITIONAL_ONLY, params[0].POSITIONAL_OR_KEYWORD):
        raise ContractError(f"{contract.__qualname__}.{name} must take 'self' as its first parameter")
    return MethodDescriptor(
        name=name,
        signature=sig.replace(parameters=params[1:]),
        is_async=inspect.iscoroutinefunction(fn) or _returns_awaitable(fn),
        kind=RESERVED_METHODS.get(name, MethodKind.COMMAND),
    )


def _property_hint(fget: Any) -> Any:
    if fget is None:
        return Any
    try:
        return get_type_hints(fget, include_extras=True).get("return", Any)
    except NameError as exc:
        raise ContractError(f"Cannot resolve return annotation of {fget.__qualname__}: {exc}") from exc


def _returns_awaitable(fn: Any) -> bool:
    try:
        hint = get_type_hints(fn).get("return")
    except NameError:
        # Unresolvable annotations: only ``async def`` marks a method asynchronous
        return False
    origin = _unwrap(hint)
    origin = get_origin(origin) or origin
    return isinstance(origin, type) and issubclass(origin, _AWAITABLE_TYPES)


def _type_name(tp: Any) -> str:
    if isinstance(tp, type) and not get_args(tp):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")
