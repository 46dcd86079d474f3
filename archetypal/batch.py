"""Column-wise construction of many entities that share the same component types."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from archetypal.archetype import Archetype, TypeInfo
from archetypal.entity import U32_MAX


class BatchIncomplete(ValueError):
    """A :class:`ColumnBatchBuilder` was missing components."""

    def __init__(self) -> None:
        super().__init__("batch incomplete")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BatchIncomplete)

    def __hash__(self) -> int:
        return hash(BatchIncomplete)


class BatchFull(ValueError):
    """A :class:`BatchWriter` had no room left; the rejected value is kept."""

    def __init__(self, value: Any) -> None:
        super().__init__("batch writer is full")
        self.value = value


class ColumnBatchType:
    """A collection of component types."""

    def __init__(self, types: Iterable[type] = ()) -> None:
        self._types: list[TypeInfo] = [TypeInfo.of(ty) for ty in types]

    def add(self, ty: type) -> ColumnBatchType:
        """Include ``ty`` components; returns self for chaining."""
        self._types.append(TypeInfo.of(ty))
        return self

    def copy(self) -> ColumnBatchType:
        """An independent copy of this set of types."""
        duplicate = ColumnBatchType()
        duplicate._types = list(self._types)
        return duplicate

    def into_batch(self, size: int) -> ColumnBatchBuilder:
        """Start a batch for exactly ``size`` entities with these components."""
        return ColumnBatchBuilder(self, size)

    def __len__(self) -> int:
        return len(set(self._types))


class BatchWriter:
    """Handle for appending components of one type to a batch."""

    def __init__(self, ty: type, storage: list[Any], capacity: int) -> None:
        self._ty = ty
        self._storage = storage
        self._capacity = capacity

    def push(self, value: Any) -> None:
        """Append a component; raises :class:`BatchFull` when no space is left."""
        if len(self._storage) >= self._capacity:
            raise BatchFull(value)
        if not isinstance(value, self._ty):
            raise TypeError(
                f"expected a {TypeInfo.of(self._ty).name} component, "
                f"got {type(value).__name__}"
            )
        self._storage.append(value)

    @property
    def fill(self) -> int:
        """How many components have been added so far."""
        return len(self._storage)


@dataclass
class ColumnBatch:
    """Component data for entities with the same component types, ready to spawn."""

    archetype: Archetype

    def __len__(self) -> int:
        return len(self.archetype)


class ColumnBatchBuilder:
    """An incomplete collection of component data for exactly ``size`` entities."""

    def __init__(self, batch_type: ColumnBatchType, size: int) -> None:
        if size < 0:
            raise ValueError("batch size must not be negative")
        types = sorted(set(batch_type._types))
        archetype = Archetype(types)
        archetype.reserve(size)
        self._archetype: Archetype | None = archetype
        self._columns: dict[type, list[Any]] = {info.id: [] for info in types}

    def _live(self) -> Archetype:
        if self._archetype is None:
            raise RuntimeError("batch already built")
        return self._archetype

    def writer(self, ty: type) -> BatchWriter | None:
        """A writer for ``ty`` components, or None if ``ty`` is not in the batch type."""
        archetype = self._live()
        storage = self._columns.get(ty)
        if storage is None:
            return None
        return BatchWriter(ty, storage, archetype.capacity())

    def build(self) -> ColumnBatch:
        """Finish the batch; raises :class:`BatchIncomplete` if any component is missing."""
        archetype = self._live()
        capacity = archetype.capacity()
        if any(len(self._columns[info.id]) != capacity for info in archetype.types):
            raise BatchIncomplete()
        for row in range(capacity):
            index = archetype.allocate(U32_MAX)
            for ty, column in self._columns.items():
                archetype.put(ty, index, column[row])
        self._archetype = None
        self._columns = {}
        return ColumnBatch(archetype)