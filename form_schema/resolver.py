"""
resolver.py - inheritance resolution
====================================

A schema may inherit from one or more parents (``inherits_from``), each of
which may inherit in turn.  Resolution walks the chain depth-first and
merges, in order, every ancestor as listed and finally the schema itself;
later entries win.  Field rule sets are deep-merged so a child overrides
individual rules (and individual nested ``keys``/``values`` entries), not
whole fields.

Public API
----------
resolve(name, schemas) -> (Schema, lineage)
    The merged, parent-free :class:`~form_schema.rules.Schema` and the order
    in which schemas were merged.

compile(name, schemas, builder) -> CompiledTree
    :func:`resolve` followed by descriptor building.
"""

from __future__ import annotations

import logging
from typing import Mapping

from .errors import CyclicInheritance, UnknownSchema
from .rules import CompiledTree, RuleBuilder, Schema
from .utils import deep_merge

__all__ = [
    "resolve",
    "compile",
]

log = logging.getLogger(__name__)


def _merge(base: Schema, override: Schema) -> Schema:
    return Schema(
        name=override.name,
        ignore_missing=(
            override.ignore_missing if override.ignore_missing is not None else base.ignore_missing
        ),
        params=deep_merge(base.params, override.params),
        # groups are replaced per name; their shape is all-or-nothing
        groups={**base.groups, **override.groups},
        postprocess=override.postprocess or base.postprocess,
    )


def _resolve(
    name: str,
    schemas: Mapping[str, Schema],
    chain: tuple[str, ...],
) -> tuple[Schema, tuple[str, ...]]:
    if name in chain:
        raise CyclicInheritance(name, chain)
    schema = schemas.get(name)
    if schema is None:
        raise UnknownSchema(name)

    merged = Schema(name=name)
    lineage: list[str] = []
    for parent in schema.inherits_from:
        ancestor, ancestry = _resolve(parent, schemas, (*chain, name))
        merged = _merge(merged, ancestor)
        lineage.extend(n for n in ancestry if n not in lineage)

    merged = _merge(merged, schema)
    lineage.append(name)
    return merged, tuple(lineage)


def resolve(name: str, schemas: Mapping[str, Schema]) -> tuple[Schema, tuple[str, ...]]:
    """Merge *name* with all of its ancestors.

    Raises :class:`UnknownSchema` for a missing schema or ancestor and
    :class:`CyclicInheritance` when a schema is its own ancestor.
    """
    return _resolve(name, schemas, ())


def compile(name: str, schemas: Mapping[str, Schema], builder: RuleBuilder) -> CompiledTree:
    merged, lineage = resolve(name, schemas)
    log.debug("compiling schema %r (merge order: %s)", name, " <- ".join(lineage))
    return builder.compiled(merged, lineage)
