"""Borrowed access to single components and handles to whole entities."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator
from typing import Any

from archetypal.archetype import Archetype
from archetypal.bundle import MissingComponent


class _ComponentRef:
    """Common machinery for shared and unique component borrows."""

    def __init__(self, archetype: Archetype, ty: type, index: int, unique: bool) -> None:
        self._released = True
        if not archetype.has(ty):
            raise MissingComponent(ty)
        self._archetype = archetype
        self._ty = ty
        self._index = index
        self._unique = unique
        if unique:
            archetype.borrow_mut(ty)
        else:
            archetype.borrow(ty)
        self._released = False

    def _check_live(self) -> None:
        if self._released:
            raise RuntimeError("borrow already released")

    def _read(self) -> Any:
        self._check_live()
        return self._archetype.get_component(self._ty, self._index)

    def _give_back(self) -> None:
        if self._released:
            return
        self._released = True
        if self._unique:
            self._archetype.release_mut(self._ty)
        else:
            self._archetype.release(self._ty)

    def __del__(self) -> None:
        try:
            self._give_back()
        except Exception:
            pass

    def __repr__(self) -> str:
        state = "released" if self._released else repr(self._read())
        return f"{type(self).__name__}({state})"


class Ref(_ComponentRef):
    """Shared borrow of an entity's component."""

    def __init__(self, archetype: Archetype, ty: type, index: int) -> None:
        super().__init__(archetype, ty, index, unique=False)

    @property
    def value(self) -> Any:
        """The borrowed component."""
        return self._read()

    def release(self) -> None:
        """Give back the borrow; further calls do nothing."""
        self._give_back()

    def __enter__(self) -> Ref:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.release()


class RefMut(_ComponentRef):
    """Unique borrow of an entity's component; ``value`` may be assigned."""

    def __init__(self, archetype: Archetype, ty: type, index: int) -> None:
        super().__init__(archetype, ty, index, unique=True)

    @property
    def value(self) -> Any:
        """The borrowed component."""
        return self._read()

    @value.setter
    def value(self, new: Any) -> None:
        self._check_live()
        self._archetype.put(self._ty, self._index, new)

    def release(self) -> None:
        """Give back the borrow; further calls do nothing."""
        self._give_back()

    def __enter__(self) -> RefMut:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.release()


class EntityRef:
    """Handle to an entity with any component types."""

    def __init__(self, archetype: Archetype | None = None, index: int = 0) -> None:
        self._archetype = archetype
        self._index = index

    def get(self, ty: type) -> Ref | None:
        """Borrow the ``ty`` component, or None if the entity has none.

        Raises BorrowError if the column is uniquely borrowed.
        """
        if self._archetype is None or not self._archetype.has(ty):
            return None
        return Ref(self._archetype, ty, self._index)

    def get_mut(self, ty: type) -> RefMut | None:
        """Uniquely borrow the ``ty`` component, or None if the entity has none.

        Raises BorrowError if the column is borrowed at all.
        """
        if self._archetype is None or not self._archetype.has(ty):
            return None
        return RefMut(self._archetype, ty, self._index)

    def component_types(self) -> Iterator[type]:
        """Enumerate the types of the entity's components."""
        if self._archetype is None:
            return iter(())
        return self._archetype.component_types()

    def __len__(self) -> int:
        return 0 if self._archetype is None else len(self._archetype.types)


def _display_bool(value: bool) -> str:
    return "true" if value else "false"


def _display_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


_FORMATTERS: tuple[tuple[type, Callable[[Any], str]], ...] = (
    (int, str),
    (bool, _display_bool),
    (float, _display_float),
)


def format_entity(entity: EntityRef) -> str:
    """Render the int, bool and float components of an entity, e.g. ``[42, true]``."""
    parts = []
    for ty, render in _FORMATTERS:
        ref = entity.get(ty)
        if ref is not None:
            with ref:
                parts.append(render(ref.value))
    return "[" + ", ".join(parts) + "]"