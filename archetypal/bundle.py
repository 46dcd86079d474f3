"""Bundles: collections of components that are spawned or inserted together.

A bundle is either a tuple of component values, whose component types are
their Python types, or an object with ``type_info()`` and ``components()``
methods, such as the output of an entity builder.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Protocol, runtime_checkable

from archetypal.archetype import TypeInfo


class MissingComponent(LookupError):
    """An entity did not have a required component."""

    def __init__(self, ty: type | str) -> None:
        self.type_name = ty if isinstance(ty, str) else TypeInfo.of(ty).name
        super().__init__(self.type_name)

    def __str__(self) -> str:
        return f"missing {self.type_name} component"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MissingComponent):
            return NotImplemented
        return self.type_name == other.type_name

    def __hash__(self) -> int:
        return hash((MissingComponent, self.type_name))


@runtime_checkable
class _DynamicBundle(Protocol):
    def type_info(self) -> list[TypeInfo]: ...

    def components(self) -> Iterable[tuple[TypeInfo, Any]]: ...


def _check_bundle(bundle: object) -> None:
    if not isinstance(bundle, (tuple, _DynamicBundle)):
        raise TypeError(
            f"a bundle must be a tuple of components or a built entity, "
            f"not {type(bundle).__name__}"
        )


def type_info(bundle: Any) -> list[TypeInfo]:
    """Component type metadata of a bundle, in storage order.

    Duplicate types are kept; storing such a bundle is rejected later.
    """
    _check_bundle(bundle)
    if isinstance(bundle, tuple):
        return sorted(TypeInfo.of(type(component)) for component in bundle)
    return list(bundle.type_info())


def components(bundle: Any) -> Iterator[tuple[TypeInfo, Any]]:
    """Yield ``(type info, value)`` for every component of a bundle."""
    _check_bundle(bundle)
    if isinstance(bundle, tuple):
        return ((TypeInfo.of(type(component)), component) for component in bundle)
    return iter(bundle.components())


def from_components(types: Iterable[type], fetch: Callable[[TypeInfo], Any]) -> tuple[Any, ...]:
    """Assemble a tuple bundle of ``types`` from values produced by ``fetch``.

    ``fetch`` raises :class:`LookupError` for a type it cannot supply; this is
    reported as :class:`MissingComponent` for that type.
    """
    values = []
    for ty in types:
        info = TypeInfo.of(ty)
        try:
            values.append(fetch(info))
        except LookupError:
            raise MissingComponent(info.name) from None
    return tuple(values)