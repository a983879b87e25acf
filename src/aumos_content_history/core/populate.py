"""Populate planning — how deep to expand a document before snapshotting it.

The planner walks the content type schema graph and produces a populate plan
the document engine understands:

    True                                   expand everything at this level, no nesting
    {"author": True}                       expand the author relation one level
    {"author": {"populate": {...}}}        expand author and recurse into its fields
    {"blocks": {"on": {"blocks.quote": True,
                       "blocks.gallery": {"populate": {...}}}}}
                                           dynamic zone, one plan per candidate component

Cycles (article -> author -> article) are cut using the set of types on the
current path only. A type that appears in two sibling branches is expanded in
both; a type that is its own ancestor is expanded one level (True) and not
recursed into. The resulting plan is always finite and depends only on the
schema graph and the omit-set.
"""

import copy
from collections.abc import Collection
from typing import Any, Literal, Union

from aumos_content_history.core.interfaces import ISchemaRegistry
from aumos_content_history.core.schema import FieldKind
from aumos_content_history.observability import get_logger

logger = get_logger(__name__)

PopulatePlan = Union[Literal[True], dict[str, Any]]


class PopulateGraphPlanner:
    """Builds populate plans from the schema registry.

    Plans are rebuilt on every call unless cache is enabled. Cached plans are
    handed out as deep copies so a caller mutating its plan cannot affect any
    other caller. A host whose registry changes at runtime must call
    invalidate() after each change (create_app() exposes the planner as
    app.state.planner); until then the old plans are served.

    Args:
        schema_registry: Source of content type schemas.
        omit_fields: Field names never expanded (the redaction omit-set).
        cache: Memoize plans per content type uid.
    """

    def __init__(
        self,
        schema_registry: ISchemaRegistry,
        omit_fields: Collection[str] = (),
        cache: bool = False,
    ) -> None:
        self._registry = schema_registry
        self._omit_fields = frozenset(omit_fields)
        self._cache_enabled = cache
        self._cache: dict[str, PopulatePlan] = {}

    def plan(self, uid: str) -> PopulatePlan:
        """Return the populate plan for a content type.

        Args:
            uid: The content type identifier.

        Returns:
            True when the type is unknown or has nothing to expand, otherwise
            a nested plan dict.
        """
        if not self._cache_enabled:
            return self._build(uid, frozenset())

        cached = self._cache.get(uid)
        if cached is None:
            cached = self._build(uid, frozenset())
            self._cache[uid] = cached
            logger.debug("Populate plan cached", content_type=uid)
        return copy.deepcopy(cached)

    def invalidate(self) -> None:
        """Drop every cached plan."""
        self._cache.clear()

    def _build(self, uid: str, path: frozenset[str]) -> PopulatePlan:
        schema = self._registry.get_schema(uid)
        if schema is None:
            return True

        path = path | {uid}
        populate: dict[str, Any] = {}

        for field in schema.fields:
            if field.name in self._omit_fields:
                continue

            if field.kind in (FieldKind.RELATION, FieldKind.COMPONENT) and field.target:
                populate[field.name] = self._expand(field.target, path)
            elif field.kind is FieldKind.DYNAMIC_ZONE and field.components:
                populate[field.name] = {
                    "on": {component: self._expand(component, path) for component in field.components}
                }
            elif field.kind is FieldKind.MEDIA:
                populate[field.name] = True

        return populate if populate else True

    def _expand(self, target: str, path: frozenset[str]) -> PopulatePlan:
        # Target is an ancestor on this path: include one level, stop recursing.
        if target in path:
            return True
        nested = self._build(target, path)
        return True if nested is True else {"populate": nested}


def merge_populate(requested: Any, plan: PopulatePlan) -> Any:
    """Combine a caller's own populate request with a computed plan.

    The plan wins for any field both mention, since it is at least as deep.
    A caller asking for True or "*" with a plan of True keeps its request.

    Args:
        requested: The populate value already on the operation params, or None.
        plan: The computed populate plan.

    Returns:
        The populate value to send to the engine.
    """
    if requested is None:
        return plan
    if plan is True:
        return requested
    if isinstance(requested, dict):
        return {**requested, **plan}
    if isinstance(requested, (list, tuple)):
        merged: dict[str, Any] = {name: True for name in requested}
        merged.update(plan)
        return merged
    return plan
