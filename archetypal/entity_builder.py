"""Incremental construction of a bundle whose component types are chosen at run time."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from archetypal.archetype import TypeInfo
from archetypal.bundle import MissingComponent
from archetypal.bundle import components as bundle_components


class BuiltEntity:
    """The output of an :class:`EntityBuilder`, usable wherever a bundle is."""

    def __init__(self, values: dict[type, Any]) -> None:
        self._items = sorted(
            ((TypeInfo.of(ty), value) for ty, value in values.items()),
            key=lambda item: item[0],
        )

    def type_info(self) -> list[TypeInfo]:
        """Component type metadata, in storage order."""
        return [info for info, _ in self._items]

    def components(self) -> Iterator[tuple[TypeInfo, Any]]:
        """Yield ``(type info, value)`` for every component, in storage order."""
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


class EntityBuilder:
    """Collects components one by one; a later component replaces one of the same type."""

    def __init__(self) -> None:
        self._values: dict[type, Any] = {}

    def add(self, component: Any) -> EntityBuilder:
        """Add ``component``, replacing any component of the same type."""
        return self.add_bundle((component,))

    def add_bundle(self, bundle: Any) -> EntityBuilder:
        """Add every component of ``bundle``, replacing components of the same types."""
        for info, value in bundle_components(bundle):
            self._values[info.id] = value
        return self

    def has(self, ty: type) -> bool:
        """Whether a ``ty`` component has been added."""
        return ty in self._values

    def get(self, ty: type) -> Any:
        """The ``ty`` component, or None if there is none."""
        return self._values.get(ty)

    def set(self, component: Any) -> None:
        """Replace the existing component of the same type as ``component``."""
        ty = type(component)
        if ty not in self._values:
            raise MissingComponent(ty)
        self._values[ty] = component

    def component_types(self) -> Iterator[type]:
        """Enumerate the types of the added components."""
        return iter(list(self._values))

    def build(self) -> BuiltEntity:
        """Take the components out as a bundle; the builder is left empty for reuse."""
        built = BuiltEntity(self._values)
        self.clear()
        return built

    def clear(self) -> None:
        """Drop every added component."""
        self._values = {}

    def __len__(self) -> int:
        return len(self._values)