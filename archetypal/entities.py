"""Allocation of entity ids, including lock-step reservation and flushing."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace

from archetypal.entity import (
    INVALID_INDEX,
    U32_MAX,
    Entity,
    EntityMeta,
    Location,
    NoSuchEntity,
)


def _checked_id(value: int) -> int:
    if not 0 <= value <= U32_MAX:
        raise OverflowError("too many entities")
    return value


class ReservedEntities:
    """Iterator over the handles produced by :meth:`Entities.reserve_entities`.

    Ids recycled from the freelist come first, then brand new ids beyond the
    current end of the metadata table.
    """

    def __init__(self, meta: list[EntityMeta], freed_ids: list[int], new_ids: range) -> None:
        self._meta = meta
        self._freed = iter(freed_ids)
        self._freed_left = len(freed_ids)
        self._new = iter(new_ids)
        self._new_left = len(new_ids)

    def __iter__(self) -> Iterator[Entity]:
        return self

    def __next__(self) -> Entity:
        if self._freed_left:
            self._freed_left -= 1
            entity_id = next(self._freed)
            return Entity(generation=self._meta[entity_id].generation, id=entity_id)
        if self._new_left:
            self._new_left -= 1
            return Entity(generation=0, id=next(self._new))
        raise StopIteration

    def __len__(self) -> int:
        return self._freed_left + self._new_left


@dataclass
class AllocManyState:
    """Progress through the ids handed out by :meth:`Entities.alloc_many`."""

    pending_end: int
    fresh_start: int
    fresh_end: int

    def next_id(self, entities: Entities) -> int | None:
        """Return the next allocated id, or None once all have been handed out."""
        if self.pending_end < len(entities.pending):
            entity_id = entities.pending[self.pending_end]
            self.pending_end += 1
            return entity_id
        if self.fresh_start < self.fresh_end:
            entity_id = self.fresh_start
            self.fresh_start += 1
            return entity_id
        return None

    def remaining(self, entities: Entities) -> int:
        """Number of ids not yet returned by :meth:`next_id`."""
        return (self.fresh_end - self.fresh_start) + (len(entities.pending) - self.pending_end)


class Entities:
    """Table of entity generations and locations with a freelist of ids.

    ``pending`` holds the freelist followed by ids reserved out of it; the
    boundary between them is the free cursor. A negative free cursor counts ids
    reserved beyond the end of ``meta`` that :meth:`flush` has yet to create.
    """

    def __init__(self) -> None:
        self.meta: list[EntityMeta] = []
        self.pending: list[int] = []
        self._free_cursor = 0
        self._len = 0

    @property
    def free_cursor(self) -> int:
        """Boundary between freelist and reserved ids (negative: new ids reserved)."""
        return self._free_cursor

    def reserve_entities(self, count: int) -> ReservedEntities:
        """Reserve ``count`` ids; storage for them is created by :meth:`flush`."""
        range_end = self._free_cursor
        self._free_cursor -= count
        range_start = range_end - count

        freed_ids = self.pending[max(range_start, 0):max(range_end, 0)]

        if range_start >= 0:
            new_ids = range(0)
        else:
            base = len(self.meta)
            new_end = _checked_id(base - range_start)
            new_start = base - min(range_end, 0)
            new_ids = range(new_start, new_end)

        return ReservedEntities(self.meta, freed_ids, new_ids)

    def reserve_entity(self) -> Entity:
        """Reserve a single id; storage for it is created by :meth:`flush`."""
        n = self._free_cursor
        self._free_cursor -= 1
        if n > 0:
            entity_id = self.pending[n - 1]
            return Entity(generation=self.meta[entity_id].generation, id=entity_id)
        return Entity(generation=0, id=_checked_id(len(self.meta) - n))

    def _verify_flushed(self) -> None:
        if self.needs_flush():
            raise RuntimeError("flush() needs to be called before this operation is legal")

    def alloc(self) -> Entity:
        """Allocate an id directly, preferring the freelist."""
        self._verify_flushed()
        self._len += 1
        if self.pending:
            entity_id = self.pending.pop()
            self._free_cursor = len(self.pending)
            return Entity(generation=self.meta[entity_id].generation, id=entity_id)
        entity_id = _checked_id(len(self.meta))
        self.meta.append(EntityMeta())
        return Entity(generation=0, id=entity_id)

    def alloc_many(self, n: int, archetype: int, first_index: int) -> AllocManyState:
        """Allocate ``n`` ids laid out contiguously in ``archetype`` from ``first_index``.

        :meth:`finish_alloc_many` must be called afterwards.
        """
        self._verify_flushed()

        fresh = max(n - len(self.pending), 0)
        if len(self.meta) + fresh >= U32_MAX:
            raise OverflowError("too many entities")
        pending_end = max(len(self.pending) - n, 0)
        for entity_id in self.pending[pending_end:]:
            self.meta[entity_id].location = Location(archetype=archetype, index=first_index)
            first_index += 1

        fresh_start = len(self.meta)
        self.meta.extend(
            EntityMeta(generation=0, location=Location(archetype=archetype, index=index))
            for index in range(first_index, first_index + fresh)
        )

        self._len += n
        return AllocManyState(
            pending_end=pending_end,
            fresh_start=fresh_start,
            fresh_end=fresh_start + fresh,
        )

    def finish_alloc_many(self, pending_end: int) -> None:
        """Drop the ids used by :meth:`alloc_many` from the freelist."""
        del self.pending[pending_end:]
        self._free_cursor = len(self.pending)

    def alloc_at(self, entity: Entity) -> Location | None:
        """Allocate a specific id, overwriting its generation.

        Returns the location of the entity that was using the id, if any.
        """
        self._verify_flushed()

        if entity.id >= len(self.meta):
            self.pending.extend(range(len(self.meta), entity.id))
            self._free_cursor = len(self.pending)
            self.meta.extend(EntityMeta() for _ in range(entity.id + 1 - len(self.meta)))
            self._len += 1
            previous = None
        elif entity.id in self.pending:
            index = self.pending.index(entity.id)
            self.pending[index] = self.pending[-1]
            self.pending.pop()
            self._free_cursor = len(self.pending)
            self._len += 1
            previous = None
        else:
            meta = self.meta[entity.id]
            previous = meta.location
            meta.location = Location()

        self.meta[entity.id].generation = entity.generation
        return previous

    def free(self, entity: Entity) -> Location:
        """Destroy an entity so its id can be reused; return its old location."""
        self._verify_flushed()

        if entity.id >= len(self.meta):
            raise NoSuchEntity()
        meta = self.meta[entity.id]
        if meta.generation != entity.generation:
            raise NoSuchEntity()
        meta.generation = (meta.generation + 1) & U32_MAX

        location = meta.location
        meta.location = Location()

        self.pending.append(entity.id)
        self._free_cursor = len(self.pending)
        self._len -= 1
        return location

    def reserve(self, additional: int) -> None:
        """Prepare for ``additional`` allocations; lists grow on demand."""
        self._verify_flushed()
        if additional < 0:
            raise ValueError("additional must not be negative")

    def contains(self, entity: Entity) -> bool:
        """Whether the handle is live; unflushed reserved ids count as live."""
        if entity.id >= len(self.meta):
            return True
        return self.meta[entity.id].generation == entity.generation

    def clear(self) -> None:
        """Forget every entity."""
        self.meta.clear()
        self.pending.clear()
        self._free_cursor = 0
        self._len = 0

    def get_mut(self, entity: Entity) -> Location:
        """Return the live, mutable location record of an entity."""
        if entity.id >= len(self.meta):
            raise NoSuchEntity()
        meta = self.meta[entity.id]
        if meta.generation != entity.generation:
            raise NoSuchEntity()
        return meta.location

    def get(self, entity: Entity) -> Location:
        """Return a copy of an entity's location.

        Pending entities and entities without components report archetype 0.
        """
        if entity.id >= len(self.meta):
            return Location(archetype=0, index=INVALID_INDEX)
        meta = self.meta[entity.id]
        if meta.generation != entity.generation:
            raise NoSuchEntity()
        if meta.location.archetype == 0:
            return Location(archetype=0, index=INVALID_INDEX)
        return replace(meta.location)

    def resolve_unknown_gen(self, id: int) -> Entity:
        """Rebuild the handle of a currently allocated id."""
        if id < len(self.meta):
            return Entity(generation=self.meta[id].generation, id=id)
        num_pending = max(-self._free_cursor, 0)
        if id < len(self.meta) + num_pending:
            return Entity(generation=0, id=id)
        raise IndexError("entity id is out of range")

    def needs_flush(self) -> bool:
        """Whether reserved ids are waiting for :meth:`flush`."""
        return self._free_cursor != len(self.pending)

    def flush(self, init: Callable[[int, Location], None]) -> None:
        """Create storage for reserved ids, calling ``init(id, location)`` on each."""
        free_cursor = self._free_cursor

        if free_cursor >= 0:
            new_free_cursor = free_cursor
        else:
            old_meta_len = len(self.meta)
            self.meta.extend(EntityMeta() for _ in range(-free_cursor))
            self._len += -free_cursor
            for entity_id in range(old_meta_len, len(self.meta)):
                init(entity_id, self.meta[entity_id].location)
            self._free_cursor = 0
            new_free_cursor = 0

        reserved = self.pending[new_free_cursor:]
        del self.pending[new_free_cursor:]
        self._len += len(reserved)
        for entity_id in reserved:
            init(entity_id, self.meta[entity_id].location)

    def __len__(self) -> int:
        return self._len