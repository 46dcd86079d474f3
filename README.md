# archetypal

Archetype-based storage building blocks for an entity-component-system (ECS).
Components are ordinary Python objects, and each one is keyed by its exact
type. Entities that have the same set of component types are stored together
in one `Archetype`, which keeps one column per type.

The package has no runtime dependencies.

## Installation

```
pip install archetypal
```

To run the test suite:

```
pip install "archetypal[test]"
pytest
```

## Modules

- `archetypal.entity`
  - `Entity` is a frozen, ordered handle made of a `generation` and an `id`,
    both unsigned 32-bit values. It is shown as `"<id>v<generation>"`.
  - `Entity.to_bits()` and `Entity.from_bits()` pack the handle into a 64-bit
    integer and unpack it again.
  - `NoSuchEntity` is a `LookupError` that is raised for stale handles.
  - `Location` and `EntityMeta` are the records kept for each entity id.
- `archetypal.entities`
  - `Entities` allocates entity ids. It provides `alloc`, `free`, `alloc_at`,
    `alloc_many`/`finish_alloc_many`, `get`, `get_mut`, `contains`,
    `resolve_unknown_gen`, `clear` and `len()`.
  - `reserve_entity()` and `reserve_entities(count)` hand out ids before their
    storage exists. `reserve_entities` returns a sized iterator,
    `ReservedEntities`. `flush(init)` creates the reserved ids and calls
    `init(id, location)` for each one.
  - Most allocation methods raise `RuntimeError` while a flush is still owed.
- `archetypal.archetype`
  - `Archetype` is the columnar store, with methods such as `allocate`, `put`,
    `get_component`, `remove`, `move_to`, `merge`, `ids`, `get`,
    `access_dynamic` and `clear`.
  - `TypeInfo` describes a component type.
  - `Access` is an `IntEnum` with the members `ITERATE`, `READ` and `WRITE`.
  - `AtomicBorrow` is the thread-safe borrow counter: many shared borrows or
    one unique borrow. `BorrowError` is raised when borrows conflict.
  - `ColumnRef` is a shared, borrowed view of one column. It works as a
    context manager.
  - Building an archetype with the same type twice raises `ValueError`.
- `archetypal.bundle`
  - `type_info(bundle)` and `components(bundle)` work on a tuple of components
    or on a `BuiltEntity`.
  - `from_components(types, fetch)` assembles a tuple.
  - `MissingComponent` is raised when a required component is absent.
- `archetypal.borrow`
  - `Ref` and `RefMut` are borrows of a single component. Read it through
    `.value`. On a `RefMut` you can also assign `.value`.
  - `EntityRef` gives access to one row's components.
  - `format_entity(entity)` renders the entity's `int`, `bool` and `float`
    components, for example `[42, true]`.
- `archetypal.entity_builder`
  - `EntityBuilder` collects components one at a time. A later component
    replaces an earlier one of the same type.
  - `build()` returns a `BuiltEntity` and leaves the builder empty.
- `archetypal.batch`
  - `ColumnBatchType` is a set of component types. Call
    `into_batch(size)` on it to get a `ColumnBatchBuilder`.
  - `BatchWriter.push` fills one column and raises `BatchFull` once the batch
    is full.
  - `build()` returns a `ColumnBatch`, or raises `BatchIncomplete` if a column
    is short.
- `archetypal.dynamic_query`
  - `DynamicQueryTypes` lists the types a query reads and writes.
  - `DynamicQuery` selects the non-empty archetypes that hold all of those
    types. `iter_entities()` yields the matching entities, and
    `iter_component_slices(ty)` yields one `ComponentSlice` per archetype.

## Examples

Allocating and recycling ids:

```python
from archetypal.entities import Entities
from archetypal.entity import Entity

entities = Entities()
a = entities.alloc()
entities.free(a)
b = entities.alloc()            # reuses the id of a with a new generation
assert b.id == a.id and not entities.contains(a)
assert Entity.from_bits(b.to_bits()) == b
```

Storing a row and looking at it:

```python
from archetypal.archetype import Archetype, BorrowError
from archetypal.borrow import EntityRef, format_entity

arch = Archetype([int, bool])
row = arch.allocate(0)
arch.put(int, row, 42)
arch.put(bool, row, True)
assert format_entity(EntityRef(arch, row)) == "[42, true]"

with arch.get(int) as column:
    assert column == [42]
    try:
        arch.borrow_mut(int)
    except BorrowError:
        pass                    # a shared borrow is still held
```

Building components and filling a batch:

```python
from archetypal.batch import ColumnBatchType
from archetypal.entity_builder import EntityBuilder

builder = EntityBuilder()
builder.add("abc").add(123)
assert builder.has(int) and builder.get(int) == 123

batch = ColumnBatchType().add(int).add(bool).into_batch(2)
ints, flags = batch.writer(int), batch.writer(bool)
ints.push(42); ints.push(43)
flags.push(True); flags.push(False)
assert len(batch.build()) == 2
```

## What this package does not do

This package provides the parts only. It has no world object that ties
`Entities` and archetypes together. It also does not offer:

- spawning or despawning of entities,
- statically typed queries,
- persistence of any kind.

You connect the pieces yourself. For example, you record an `Archetype` row
in an entity's `Location` and pass `Entities.meta` to a `DynamicQuery`.