"""Queries whose component types are chosen at run time."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from archetypal.archetype import Archetype, TypeInfo
from archetypal.entity import Entity, EntityMeta


@dataclass(frozen=True)
class DynamicQueryTypes:
    """The component types read and written by a dynamic query."""

    read_types: tuple[type, ...] = ()
    write_types: tuple[type, ...] = ()

    def __init__(self, read_types: Iterable[type] = (), write_types: Iterable[type] = ()) -> None:
        object.__setattr__(self, "read_types", tuple(read_types))
        object.__setattr__(self, "write_types", tuple(write_types))


class ComponentSlice:
    """The components of one type from one archetype matched by a query."""

    def __init__(self, ty: type, values: list[Any]) -> None:
        self._ty = ty
        self._values = values

    @property
    def component_type(self) -> type:
        """The type of the components in this slice."""
        return self._ty

    def __len__(self) -> int:
        return len(self._values)

    def as_list(self, ty: type) -> list[Any]:
        """The components as a list; raises TypeError if ``ty`` is not their type."""
        if ty is not self._ty:
            raise TypeError(
                f"component type does not match: slice holds {TypeInfo.of(self._ty).name}, "
                f"requested {TypeInfo.of(ty).name}"
            )
        return list(self._values)


class DynamicQuery:
    """The result of a dynamic query over a set of archetypes."""

    def __init__(
        self,
        types: DynamicQueryTypes,
        archetypes: Sequence[Archetype],
        entity_meta: Sequence[EntityMeta],
    ) -> None:
        self._types = types
        self._archetypes = archetypes
        self._entity_meta = entity_meta

    def _matching_archetypes(self) -> Iterator[Archetype]:
        for archetype in self._archetypes:
            access = archetype.access_dynamic(self._types.read_types, self._types.write_types)
            if access is not None and len(archetype) > 0:
                yield archetype

    def iter_entities(self) -> Iterator[Entity]:
        """Yield the handles of the matched entities, archetype by archetype."""
        for archetype in self._matching_archetypes():
            for entity_id in archetype.ids():
                yield Entity(generation=self._entity_meta[entity_id].generation, id=entity_id)

    def iter_component_slices(self, component_type: type) -> Iterator[ComponentSlice]:
        """Yield one slice of ``component_type`` components per matched archetype."""
        for archetype in self._matching_archetypes():
            column = archetype.get(component_type)
            if column is None:
                raise LookupError("component not in query")
            with column:
                values = list(column)
            yield ComponentSlice(component_type, values)