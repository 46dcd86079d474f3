"""Entity handles and the per-entity bookkeeping records."""

from __future__ import annotations

from dataclasses import dataclass, field

U32_MAX = 0xFFFFFFFF
INVALID_INDEX = U32_MAX
"""Placeholder index for a location that has not been filled in yet."""


def _check_u32(name: str, value: int) -> None:
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"{name} must fit in 32 unsigned bits, got {value}")


@dataclass(frozen=True, order=True)
class Entity:
    """Lightweight unique handle of an entity.

    ``id`` is transiently unique: no two live entities share one, but the id of a
    dead entity may be reused. ``generation`` tells reuses apart.
    """

    generation: int
    id: int

    def __post_init__(self) -> None:
        _check_u32("generation", self.generation)
        _check_u32("id", self.id)

    def to_bits(self) -> int:
        """Pack the handle into a single 64-bit integer."""
        return (self.generation << 32) | self.id

    @classmethod
    def from_bits(cls, bits: int) -> Entity:
        """Rebuild a handle previously packed with :meth:`to_bits`."""
        if not 0 <= bits <= 0xFFFFFFFFFFFFFFFF:
            raise ValueError(f"bits must fit in 64 unsigned bits, got {bits}")
        return cls(generation=bits >> 32, id=bits & U32_MAX)

    def __repr__(self) -> str:
        return f"{self.id}v{self.generation}"


class NoSuchEntity(LookupError):
    """No entity with a particular handle exists."""

    def __init__(self, message: str = "no such entity") -> None:
        super().__init__(message)

    def __str__(self) -> str:
        return "no such entity"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NoSuchEntity)

    def __hash__(self) -> int:
        return hash(NoSuchEntity)


@dataclass
class Location:
    """Where an entity's components live: archetype number and row index."""

    archetype: int = 0
    index: int = INVALID_INDEX


@dataclass
class EntityMeta:
    """Generation and location of one entity id slot."""

    generation: int = 0
    location: Location = field(default_factory=Location)