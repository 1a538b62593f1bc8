"""
ID-keyed entity registry.

One Registry exists per entity kind inside a DefinitionModel. Keys are
compared with exact string equality; putting an entity under an existing
key replaces the stored one.
"""

from __future__ import annotations

from typing import Generic, Iterator, Optional, TypeVar

E = TypeVar("E")


class Registry(Generic[E]):
    """Associative container mapping identifier to entity."""

    def __init__(self, kind: str):
        self.kind = kind
        self._entries: dict[str, E] = {}

    def put(self, entity_id: str, entity: E) -> None:
        self._entries[entity_id] = entity

    def get(self, entity_id: str) -> Optional[E]:
        return self._entries.get(entity_id)

    def ids(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"Registry({self.kind!r}, {len(self._entries)} entries)"
