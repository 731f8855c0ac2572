"""Per-instance property storage."""

from __future__ import annotations

from typing import Any, Mapping


class ValueStore:
    """Last-written value per property, falling back to declared defaults.

    Not thread-safe: concurrent writers to one proxy need external locking.
    """

    def __init__(self, defaults: Mapping[str, Any] | None = None) -> None:
        # defaults: property name -> zero value of its declared type
        self._defaults: Mapping[str, Any] = defaults or {}
        self._values: dict[str, Any] = {}

    def get(self, name: str) -> Any:
        if name in self._values:
            return self._values[name]
        return self._defaults.get(name)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def is_set(self, name: str) -> bool:
        return name in self._values

    def snapshot(self) -> dict[str, Any]:
        """Return every known property with its current value."""
        merged = dict(self._defaults)
        merged.update(self._values)
        return merged
