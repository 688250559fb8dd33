"""Eager association loading for cached records.

Associations named in a query's ``include`` list are loaded together with the
owner on a cache miss and stored inside the owner's cache entry, so a hit
returns the full object graph in one step.

Staleness boundary:
    Associated records' versions are NOT part of the owner's version
    metadata. Updating an associated record does not change the owner's
    cache key, so the owner's entry keeps serving the old association data.
    The associated record's write path must call
    freshkey.persistence.versioning.bump_version() on the owner when the
    owner's cached view has to reflect the change.

Example:
    policy = AssociationLoadPolicy()
    stmt = select(Order).options(*policy.options(Order, ["lines", "customer"]))
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.interfaces import LoaderOption

IncludeTree = dict[str, "IncludeTree"]


def include_tree(include: Iterable[str]) -> IncludeTree:
    """Turn dotted paths into a nested tree.

    ["author", "author.profile", "tags"] -> {"author": {"profile": {}}, "tags": {}}
    """
    tree: IncludeTree = {}
    for path in include:
        node = tree
        for part in path.split("."):
            if not part:
                raise ValueError(f"Invalid association path {path!r}")
            node = node.setdefault(part, {})
    return tree


class AssociationLoadPolicy:
    """Loads and snapshots declared eager associations."""

    def validate(self, model: type, include: Iterable[str]) -> None:
        """Reject unknown association names before any I/O."""
        self._validate_tree(model, include_tree(include))

    def _validate_tree(self, model: type, tree: IncludeTree) -> None:
        relationships = inspect(model).relationships
        for name, children in tree.items():
            if name not in relationships:
                raise ValueError(f"{model.__name__} has no association {name!r}")
            self._validate_tree(relationships[name].mapper.class_, children)

    def options(self, model: type, include: Iterable[str]) -> list[LoaderOption]:
        """selectinload options for every include path."""
        tree = include_tree(include)
        self._validate_tree(model, tree)
        return self._options(model, tree, None)

    def _options(
        self, model: type, tree: IncludeTree, parent: Any
    ) -> list[LoaderOption]:
        loads: list[LoaderOption] = []
        relationships = inspect(model).relationships
        for name, children in sorted(tree.items()):
            attr = getattr(model, name)
            load = selectinload(attr) if parent is None else parent.selectinload(attr)
            child_loads = self._options(relationships[name].mapper.class_, children, load)
            loads.extend(child_loads or [load])
        return loads

    def snapshot(self, instance: Any, include: Iterable[str] = ()) -> dict[str, Any]:
        """Plain-dict view of a loaded instance and its included associations."""
        return self._snapshot(instance, include_tree(include))

    def _snapshot(self, instance: Any, tree: IncludeTree) -> dict[str, Any]:
        mapper = inspect(type(instance))
        data = {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}
        for name, children in tree.items():
            related = getattr(instance, name)
            if related is None:
                data[name] = None
            elif mapper.relationships[name].uselist:
                data[name] = [self._snapshot(item, children) for item in related]
            else:
                data[name] = self._snapshot(related, children)
        return data
