import pytest

from archetypal.archetype import Archetype
from archetypal.dynamic_query import ComponentSlice, DynamicQuery, DynamicQueryTypes
from archetypal.entities import Entities


class _MiniWorld:
    def __init__(self):
        self.entities = Entities()
        self.archetypes = [Archetype()]

    def spawn(self, *components):
        types = {type(c) for c in components}
        for number, arch in enumerate(self.archetypes):
            if set(arch.component_types()) == types:
                break
        else:
            arch = Archetype(types)
            self.archetypes.append(arch)
            number = len(self.archetypes) - 1
        entity = self.entities.alloc()
        index = arch.allocate(entity.id)
        for component in components:
            arch.put(type(component), index, component)
        location = self.entities.get_mut(entity)
        location.archetype = number
        location.index = index
        return entity

    def query(self, types):
        return DynamicQuery(types, self.archetypes, self.entities.meta)


def test_dynamic_query():
    world = _MiniWorld()
    entity1 = world.spawn(123, "abc", 4.0)
    entity2 = world.spawn(500, "aaa", 4.5)
    entity3 = world.spawn(124, "abd", 6.0, [10])
    entity4 = world.spawn("one")

    types = DynamicQueryTypes([int, str], [float])
    query = world.query(types)
    entities = list(query.iter_entities())
    assert len(entities) == 3
    assert entity1 in entities
    assert entity2 in entities
    assert entity3 in entities
    assert entity4 not in entities

    ints = [v for s in query.iter_component_slices(int) for v in s.as_list(int)]
    strings = [v for s in query.iter_component_slices(str) for v in s.as_list(str)]
    expected = {entity1: (123, "abc"), entity2: (500, "aaa"), entity3: (124, "abd")}
    for entity, number, text in zip(entities, ints, strings):
        assert (number, text) == expected[entity]


def test_entities_carry_generation():
    world = _MiniWorld()
    gone = world.spawn(1)
    world.entities.free(gone)
    world.archetypes[1].remove(gone.id if False else 0)
    reborn = world.spawn(2)
    found = list(world.query(DynamicQueryTypes([int])).iter_entities())
    assert found == [reborn]
    assert reborn.generation == 1


def test_empty_query_matches_nothing():
    world = _MiniWorld()
    world.spawn(1, "a")
    query = world.query(DynamicQueryTypes())
    assert list(query.iter_entities()) == []


def test_empty_archetypes_are_skipped():
    world = _MiniWorld()
    world.archetypes.append(Archetype([int]))
    world.spawn(7, "x")
    slices = list(world.query(DynamicQueryTypes([int])).iter_component_slices(int))
    assert [len(s) for s in slices] == [1]
    assert slices[0].as_list(int) == [7]


def test_slice_type_mismatch_raises():
    world = _MiniWorld()
    world.spawn(1)
    (piece,) = world.query(DynamicQueryTypes([int])).iter_component_slices(int)
    assert isinstance(piece, ComponentSlice)
    assert piece.component_type is int
    with pytest.raises(TypeError, match="component type does not match"):
        piece.as_list(str)


def test_component_not_in_query_raises():
    world = _MiniWorld()
    world.spawn(1)
    query = world.query(DynamicQueryTypes([int]))
    with pytest.raises(LookupError, match="component not in query"):
        list(query.iter_component_slices(str))


def test_slices_release_their_borrow():
    world = _MiniWorld()
    world.spawn(1)
    list(world.query(DynamicQueryTypes([int])).iter_component_slices(int))
    arch = world.archetypes[1]
    arch.borrow_mut(int)
    arch.release_mut(int)
    assert arch.get_component(int, 0) == 1


def test_query_types_hold_tuples():
    types = DynamicQueryTypes([int, str], [float])
    assert types.read_types == (int, str)
    assert types.write_types == (float,)