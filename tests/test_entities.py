import random

import pytest

from archetypal.entities import Entities
from archetypal.entity import INVALID_INDEX, Entity, Location, NoSuchEntity


def test_alloc_and_free():
    rng = random.Random(0xFEEDFACEDEADF00D)
    e = Entities()
    first_unused = 0
    id_to_gen = {}
    free_set = set()
    length = 0

    for _ in range(100):
        do_alloc = rng.random() < 0.7
        if do_alloc or first_unused == 0:
            entity = e.alloc()
            length += 1
            if free_set:
                assert entity.id in free_set
                free_set.remove(entity.id)
            elif entity.id >= first_unused:
                first_unused = entity.id + 1
            e.get_mut(entity).index = 37
            assert entity.id not in id_to_gen
            id_to_gen[entity.id] = entity.generation
        else:
            entity_id = rng.randrange(first_unused)
            generation = id_to_gen.pop(entity_id, None)
            entity = Entity(generation=generation or 0, id=entity_id)
            try:
                e.free(entity)
                freed = True
            except NoSuchEntity:
                freed = False
            assert freed == (generation is not None)
            if generation is not None:
                length -= 1
            free_set.add(entity_id)
        assert len(e) == length


def test_alloc_at():
    e = Entities()
    old = []
    for _ in range(2):
        entity = e.alloc()
        old.append(entity)
        e.free(entity)

    assert len(e) == 0
    first_id = old[0].id
    assert all(entity.id == first_id for entity in old)

    entity = old[-1]
    assert not e.contains(entity)
    assert entity.id in e.pending
    assert e.alloc_at(entity) is None
    assert e.contains(entity)
    assert entity.id not in e.pending
    assert len(e) == 1
    assert e.alloc_at(entity) is not None
    assert e.contains(entity)
    assert len(e) == 1

    assert len(e.meta) == 1
    assert e.alloc_at(Entity(id=3, generation=2)) is None
    assert len(e.pending) == 2
    assert e.pending == [1, 2]
    assert len(e.meta) == 4


def test_contains():
    e = Entities()
    for _ in range(2):
        entity = e.alloc()
        assert e.contains(entity)
        e.free(entity)
        assert not e.contains(entity)

    for _ in range(3):
        entity = e.reserve_entity()
        assert e.contains(entity)


@pytest.mark.parametrize(
    "reserve_n",
    [
        lambda e, n: [e.reserve_entity() for _ in range(n)],
        lambda e, n: list(e.reserve_entities(n)),
    ],
    ids=["reserve_entity", "reserve_entities"],
)
def test_reserve(reserve_n):
    e = Entities()
    v1 = [e.alloc() for _ in range(10)]
    assert max(entity.id for entity in v1) == 9
    for entity in v1:
        assert e.contains(entity)
        e.get_mut(entity).index = 37

    for entity in v1[6:]:
        e.free(entity)
    v1 = v1[:6]
    assert e.free_cursor == 4

    v2 = reserve_n(e, 10)
    assert max(entity.id for entity in v2) == 15
    assert all(e.contains(entity) for entity in v2)

    v3 = sorted(v1 + v2, key=lambda entity: entity.id)
    assert len(v3) == 16
    assert [entity.id for entity in v3] == list(range(16))

    assert e.free_cursor == -6

    flushed = []
    e.flush(lambda entity_id, _location: flushed.append(entity_id))
    assert sorted(flushed) == list(range(6, 16))
    assert not e.needs_flush()


def test_reserve_grows():
    e = Entities()
    e.reserve_entity()
    e.flush(lambda _id, _location: None)
    assert len(e) == 1


def test_reserve_grows_mixed():
    e = Entities()
    a = e.alloc()
    e.alloc()
    e.free(a)
    e.reserve_entities(3)
    e.flush(lambda _id, _location: None)
    assert len(e) == 4


def test_reserved_entities_length_and_order():
    e = Entities()
    a = e.alloc()
    e.alloc()
    e.free(a)
    reserved = e.reserve_entities(3)
    assert len(reserved) == 3
    first = next(reserved)
    assert first == Entity(generation=1, id=0)
    assert len(reserved) == 2
    assert list(reserved) == [Entity(generation=0, id=2), Entity(generation=0, id=3)]
    assert len(reserved) == 0


def test_alloc_requires_flush():
    e = Entities()
    e.reserve_entity()
    assert e.needs_flush()
    with pytest.raises(RuntimeError):
        e.alloc()


def test_free_stale_handle_raises():
    e = Entities()
    entity = e.alloc()
    e.free(entity)
    with pytest.raises(NoSuchEntity):
        e.free(entity)
    with pytest.raises(NoSuchEntity):
        e.get(entity)
    with pytest.raises(NoSuchEntity):
        e.get_mut(entity)


def test_get_reports_empty_location_for_pending_and_unplaced():
    e = Entities()
    entity = e.alloc()
    assert e.get(entity) == Location(archetype=0, index=INVALID_INDEX)
    reserved = e.reserve_entity()
    assert e.get(reserved) == Location(archetype=0, index=INVALID_INDEX)


def test_get_returns_copy_of_location():
    e = Entities()
    entity = e.alloc()
    location = e.get_mut(entity)
    location.archetype = 2
    location.index = 5
    copy = e.get(entity)
    assert copy == Location(archetype=2, index=5)
    copy.index = 99
    assert e.get(entity).index == 5


def test_free_returns_location_and_bumps_generation():
    e = Entities()
    entity = e.alloc()
    e.get_mut(entity).archetype = 3
    e.get_mut(entity).index = 7
    assert e.free(entity) == Location(archetype=3, index=7)
    again = e.alloc()
    assert again == Entity(generation=1, id=entity.id)


def test_alloc_many_uses_freelist_then_fresh_ids():
    e = Entities()
    _a, b, c = (e.alloc() for _ in range(3))
    e.free(b)
    e.free(c)
    state = e.alloc_many(4, 5, 10)
    start = state.pending_end
    assert start == 0
    assert state.remaining(e) == 4
    ids = []
    while (next_id := state.next_id(e)) is not None:
        ids.append(next_id)
    assert ids == [1, 2, 3, 4]
    assert state.remaining(e) == 0
    e.finish_alloc_many(start)
    assert e.pending == []
    assert not e.needs_flush()
    assert len(e) == 5
    assert [(m.location.archetype, m.location.index) for m in e.meta[1:]] == [
        (5, 10),
        (5, 11),
        (5, 12),
        (5, 13),
    ]
    assert e.meta[1].generation == 1


def test_resolve_unknown_gen():
    e = Entities()
    entity = e.alloc()
    e.free(entity)
    e.alloc()
    assert e.resolve_unknown_gen(0) == Entity(generation=1, id=0)
    reserved = e.reserve_entity()
    assert reserved.id == 1
    assert e.resolve_unknown_gen(1) == Entity(generation=0, id=1)
    with pytest.raises(IndexError):
        e.resolve_unknown_gen(2)


def test_clear():
    e = Entities()
    for _ in range(3):
        e.alloc()
    e.free(Entity(generation=0, id=1))
    e.clear()
    assert len(e) == 0
    assert e.meta == []
    assert e.pending == []
    assert e.alloc() == Entity(generation=0, id=0)


def test_reserve_rejects_negative():
    e = Entities()
    with pytest.raises(ValueError):
        e.reserve(-1)