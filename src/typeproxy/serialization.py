"""Structured-data bridge between contracts and pydantic.

:class:`~typeproxy.contract.Contract` exposes ``__get_pydantic_core_schema__``,
so pydantic asks this module for a schema whenever a contract type shows
up in a validated position: at the top level, inside ``list[...]``, as a
``BaseModel`` field or as a property of another contract.

Decoding validates the declared properties, asks the factory for an
empty instance and assigns each present field with an ordinary attribute
write.  Writes therefore pass through the call router, and watched
properties notify the sink while decoding.  Pass ``sink=`` (or a
``{"dispatch_sink": sink}`` validation context) to attach one before the
writes happen; without it, decoding a watched property raises
:class:`~typeproxy.errors.SinkUnavailable`.

Encoding reads every declared property through ordinary gets.  The sink
slot is runtime wiring and never appears in the output.
"""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Any, TypeVar, Union

from pydantic import GetCoreSchemaHandler, TypeAdapter
from pydantic_core import core_schema

from typeproxy.factory import contract_of, create
from typeproxy.introspect import SINK_SLOT, introspect

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Validation-context key holding the sink to attach to decoded instances
SINK_CONTEXT_KEY = SINK_SLOT

# Contract schemas currently being built on this thread, by ref
_building = threading.local()


def schema_ref(contract: type) -> str:
    """Stable pydantic definition ref for *contract*."""
    return f"typeproxy:{contract.__module__}.{contract.__qualname__}:{id(contract)}"


def contract_core_schema(contract: type, handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
    """Build the pydantic core schema for *contract* (creation hook).

    The schema carries a definition ref, so contracts that contain
    themselves (directly or through other contracts) refer back to the
    definition under construction.
    """
    info = introspect(contract)
    contract = info.contract
    ref = schema_ref(contract)

    in_progress: set[str] = getattr(_building, "refs", None) or set()
    _building.refs = in_progress
    if ref in in_progress:
        return core_schema.definition_reference_schema(ref)

    in_progress.add(ref)
    try:
        fields: dict[str, core_schema.TypedDictField] = {}
        for prop in info.properties:
            schema = handler.generate_schema(prop.annotation)
            if prop.default is None:
                # Unset text, sequences and nested contracts read back as None
                schema = core_schema.nullable_schema(schema)
            fields[prop.name] = core_schema.typed_dict_field(schema, required=False)
    finally:
        in_progress.discard(ref)
    payload_schema = core_schema.typed_dict_schema(fields)

    def materialize(data: dict[str, Any], validation_info: core_schema.ValidationInfo) -> Any:
        instance = create(contract)
        sink = (validation_info.context or {}).get(SINK_CONTEXT_KEY)
        if sink is not None:
            instance.dispatch_sink = sink
        for name, value in data.items():
            setattr(instance, name, value)
        logger.debug("Decoded %s (%d fields)", contract.__qualname__, len(data))
        return instance

    decode = core_schema.with_info_after_validator_function(materialize, payload_schema)
    return core_schema.json_or_python_schema(
        json_schema=decode,
        python_schema=core_schema.union_schema(
            [core_schema.is_instance_schema(contract), decode],
            mode="left_to_right",
        ),
        serialization=core_schema.plain_serializer_function_ser_schema(
            read_properties,
            info_arg=False,
            return_schema=payload_schema,
        ),
        ref=ref,
    )


def read_properties(instance: Any) -> dict[str, Any]:
    """Return ``{name: value}`` for every declared property, via normal gets."""
    info = introspect(contract_of(instance))
    return {name: getattr(instance, name) for name in info.property_names}


# ---------------------------------------------------------------------------
# Convenience API
# ---------------------------------------------------------------------------

@lru_cache(maxsize=None)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def _context(sink: Any) -> dict[str, Any] | None:
    return {SINK_CONTEXT_KEY: sink} if sink is not None else None


def serialize(obj: Any, target: Any = None) -> str:
    """Encode a proxy (or any value of type *target*) as JSON text."""
    adapter = _adapter(target if target is not None else contract_of(obj))
    return adapter.dump_json(obj).decode()


def to_dict(obj: Any) -> dict[str, Any]:
    """Encode a proxy as a JSON-compatible dict (nested proxies included)."""
    return _adapter(contract_of(obj)).dump_python(obj, mode="json")


def deserialize(target: type[T], data: Union[str, bytes], *, sink: Any = None) -> T:
    """Decode JSON *data* as *target*, creating proxies for contract types."""
    return _adapter(target).validate_json(data, context=_context(sink))


def from_dict(target: type[T], data: Any, *, sink: Any = None) -> T:
    """Like :func:`deserialize`, for already-parsed Python data."""
    return _adapter(target).validate_python(data, context=_context(sink))
