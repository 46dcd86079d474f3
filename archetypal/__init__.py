"""Archetype-based storage building blocks for an entity-component-system."""

__version__ = "0.1.0"
__all__ = [
    "archetype",
    "batch",
    "borrow",
    "bundle",
    "dynamic_query",
    "entities",
    "entity",
    "entity_builder",
]