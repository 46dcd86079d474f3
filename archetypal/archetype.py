"""Column storage for entities that share the same set of component types."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class BorrowError(RuntimeError):
    """A component column was borrowed in a way that conflicts with another borrow."""


class AtomicBorrow:
    """Thread-safe borrow flag: many shared borrows or a single unique one."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._shared = 0
        self._unique = False

    def borrow(self) -> bool:
        """Take a shared borrow; False if a unique borrow is held."""
        with self._lock:
            if self._unique:
                return False
            self._shared += 1
            return True

    def borrow_mut(self) -> bool:
        """Take the unique borrow; False if any borrow is held."""
        with self._lock:
            if self._unique or self._shared:
                return False
            self._unique = True
            return True

    def release(self) -> None:
        """Give back a shared borrow."""
        with self._lock:
            if self._unique:
                raise RuntimeError("shared release of unique borrow")
            if self._shared == 0:
                raise RuntimeError("unbalanced release")
            self._shared -= 1

    def release_mut(self) -> None:
        """Give back the unique borrow."""
        with self._lock:
            if not self._unique:
                raise RuntimeError("unique release of shared borrow")
            self._unique = False


class Access(IntEnum):
    """How a query touches an archetype, from least to most demanding."""

    ITERATE = 0
    READ = 1
    WRITE = 2


def _type_name(ty: type) -> str:
    if ty.__module__ == "builtins":
        return ty.__qualname__
    return f"{ty.__module__}.{ty.__qualname__}"


@dataclass(frozen=True, eq=False)
class TypeInfo:
    """Metadata identifying a component type."""

    id: type
    name: str

    @classmethod
    def of(cls, ty: type) -> TypeInfo:
        """Metadata for components of type ``ty``."""
        return cls(id=ty, name=_type_name(ty))

    def _key(self) -> tuple[str, int]:
        return (self.name, id(self.id))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeInfo):
            return NotImplemented
        return self.id is other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __lt__(self, other: TypeInfo) -> bool:
        return self._key() < other._key()

    def __le__(self, other: TypeInfo) -> bool:
        return self == other or self < other

    def __gt__(self, other: TypeInfo) -> bool:
        return other < self

    def __ge__(self, other: TypeInfo) -> bool:
        return self == other or other < self


@dataclass
class _TypeState:
    column: list[Any] = field(default_factory=list)
    borrow: AtomicBorrow = field(default_factory=AtomicBorrow)


class ColumnRef:
    """Shared borrow of one column of component data in an :class:`Archetype`."""

    def __init__(self, archetype: Archetype, ty: type, column: list[Any], length: int) -> None:
        self._archetype = archetype
        self._ty = ty
        self._column = column
        self._len = length
        self._released = False

    def __len__(self) -> int:
        return self._len

    def __getitem__(self, index: int | slice) -> Any:
        positions = range(self._len)[index]
        if isinstance(positions, range):
            return [self._column[i] for i in positions]
        return self._column[positions]

    def __iter__(self) -> Iterator[Any]:
        return (self._column[i] for i in range(self._len))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (ColumnRef, list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return repr(list(self))

    def release(self) -> None:
        """Give back the borrow; further calls do nothing."""
        if not self._released:
            self._released = True
            self._archetype.release(self._ty)

    def __enter__(self) -> ColumnRef:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.release()


def _as_type_info(item: TypeInfo | type) -> TypeInfo:
    return item if isinstance(item, TypeInfo) else TypeInfo.of(item)


class Archetype:
    """A collection of entities having exactly the same component types."""

    def __init__(self, types: Iterable[TypeInfo | type] = ()) -> None:
        infos = sorted(_as_type_info(t) for t in types)
        for first, second in zip(infos, infos[1:]):
            if first == second:
                raise ValueError(
                    f"attempted to allocate entity with duplicate {first.name} components; "
                    "each type must occur at most once!"
                )
        self._types: tuple[TypeInfo, ...] = tuple(infos)
        self._state: dict[type, _TypeState] = {info.id: _TypeState() for info in infos}
        self._entities: list[int] = []
        self._capacity = 0

    @property
    def types(self) -> tuple[TypeInfo, ...]:
        """Component type metadata, in storage order."""
        return self._types

    def has(self, ty: type) -> bool:
        """Whether this archetype stores components of type ``ty``."""
        return ty in self._state

    def get(self, ty: type) -> ColumnRef | None:
        """Borrow the column of ``ty`` components, or None if absent."""
        state = self._state.get(ty)
        if state is None:
            return None
        self.borrow(ty)
        return ColumnRef(self, ty, state.column, len(self))

    def borrow(self, ty: type) -> None:
        """Take a shared borrow of a column; raises if uniquely borrowed."""
        state = self._state.get(ty)
        if state is not None and not state.borrow.borrow():
            raise BorrowError(f"{_type_name(ty)} already borrowed uniquely")

    def borrow_mut(self, ty: type) -> None:
        """Take a unique borrow of a column; raises if borrowed at all."""
        state = self._state.get(ty)
        if state is not None and not state.borrow.borrow_mut():
            raise BorrowError(f"{_type_name(ty)} already borrowed")

    def release(self, ty: type) -> None:
        """Give back a shared borrow of a column."""
        state = self._state.get(ty)
        if state is not None:
            state.borrow.release()

    def release_mut(self, ty: type) -> None:
        """Give back a unique borrow of a column."""
        state = self._state.get(ty)
        if state is not None:
            state.borrow.release_mut()

    def __len__(self) -> int:
        return len(self._entities)

    def __repr__(self) -> str:
        names = ", ".join(info.name for info in self._types)
        return f"Archetype([{names}], len={len(self)})"

    def component_types(self) -> Iterator[type]:
        """Enumerate the component types stored here."""
        return (info.id for info in self._types)

    def ids(self) -> list[int]:
        """Raw ids of the entities in this archetype, in row order."""
        return list(self._entities)

    def entity_id(self, index: int) -> int:
        """Raw id of the entity in row ``index``."""
        return self._entities[index]

    def set_entity_id(self, index: int, id: int) -> None:
        """Record that row ``index`` belongs to entity ``id``."""
        self._entities[index] = id

    def _grow(self, increment: int) -> None:
        self._capacity += increment

    def allocate(self, id: int) -> int:
        """Add an empty row for entity ``id`` and return its index.

        Every component of the row must be written with :meth:`put` right after.
        """
        if len(self) == self._capacity:
            self._grow(max(len(self), 64))
        self._entities.append(id)
        for state in self._state.values():
            state.column.append(None)
        return len(self) - 1

    def _state_of(self, ty: type) -> _TypeState:
        try:
            return self._state[ty]
        except KeyError:
            raise KeyError(f"archetype has no {_type_name(ty)} components") from None

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self):
            raise IndexError(f"row {index} out of range for archetype of length {len(self)}")

    def put(self, ty: type, index: int, value: Any) -> None:
        """Store ``value`` as the ``ty`` component of row ``index``."""
        state = self._state_of(ty)
        self._check_index(index)
        state.column[index] = value

    def get_component(self, ty: type, index: int) -> Any:
        """Return the ``ty`` component of row ``index``."""
        state = self._state_of(ty)
        self._check_index(index)
        return state.column[index]

    def _swap_out(self, index: int) -> tuple[dict[type, Any], int | None]:
        self._check_index(index)
        last = len(self) - 1
        taken: dict[type, Any] = {}
        for info in self._types:
            column = self._state[info.id].column
            taken[info.id] = column[index]
            column[index] = column[last]
            column.pop()
        moved_id = self._entities[last]
        self._entities[index] = moved_id
        self._entities.pop()
        return taken, (moved_id if index != last else None)

    def remove(self, index: int) -> int | None:
        """Drop row ``index``; return the id of the entity moved into it, if any."""
        _, moved = self._swap_out(index)
        return moved

    def move_to(self, index: int) -> tuple[dict[type, Any], int | None]:
        """Take row ``index`` out, returning its components by type and the moved id."""
        return self._swap_out(index)

    def reserve(self, additional: int) -> None:
        """Ensure room for ``additional`` more rows."""
        spare = self._capacity - len(self)
        if additional > spare:
            self._grow(additional - spare)

    def capacity(self) -> int:
        """Number of rows that fit without growing."""
        return self._capacity

    def access_dynamic(
        self, read_types: Sequence[type], write_types: Sequence[type]
    ) -> Access | None:
        """How a query reading and writing these types would access this archetype."""
        access: Access | None = None
        for ty in read_types:
            if not self.has(ty):
                return None
            access = Access.READ if access is None else max(access, Access.READ)
        for ty in write_types:
            if not self.has(ty):
                return None
            access = Access.WRITE
        return access

    def merge(self, other: Archetype) -> None:
        """Append every row of ``other``, which must have identical component types."""
        if self._types != other._types:
            raise ValueError("archetypes to merge must have identical component types")
        self.reserve(len(other))
        for info in self._types:
            self._state[info.id].column.extend(other._state[info.id].column)
        self._entities.extend(other._entities)
        other.clear()

    def clear(self) -> None:
        """Drop every row, keeping the capacity."""
        for state in self._state.values():
            state.column.clear()
        self._entities.clear()