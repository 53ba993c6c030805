"""
rules.py - typed descriptors for schemas, fields and groups
===========================================================

Schema definitions are written as plain mappings (see :class:`Schema`).
After inheritance has been resolved the merged mapping is turned into an
immutable tree of descriptors by :class:`RuleBuilder`:

* :class:`Literal` / :class:`Pattern` - the two kinds of field key.
* :class:`RuleSet` - everything configured for one field: predicate rules,
  hooks, default and the field's :data:`FieldKind`.
* :class:`ParamTree` - the field keys of one level (top-level ``params`` or
  a nested ``keys`` map).
* :class:`GroupSpec` - a named set of fields parsed together.
* :class:`CompiledTree` - the effective, inheritance-resolved schema.

Malformed definitions raise :class:`~form_schema.errors.MalformedRule` at
build time, never while processing input.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from .errors import MalformedRule
from .utils import _as_args, deep_merge, join_path
from .validations import HOOKS, STRUCTURAL, Predicate, ValidatorRegistry

__all__ = [
    "ALL_KEY",
    "Literal",
    "Pattern",
    "FieldKey",
    "Scalar",
    "ArrayOf",
    "HashOf",
    "FieldKind",
    "Rule",
    "RuleSet",
    "ParamTree",
    "GroupSpec",
    "Schema",
    "CompiledTree",
    "RuleBuilder",
    "field_key",
]

# Rules under this key apply to every field of its level.
ALL_KEY = "_all"

_SCHEMA_KEYS = frozenset({
    "name", "inherits_from", "ignore_missing", "params", "groups", "postprocess",
})

_MISSING = object()

# --------------------------------------------------------------------------- #
# Field keys                                                                  #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Literal:
    """Exact field-name key."""

    name: str

    @property
    def label(self) -> str:
        return str(self.name)


@dataclass(frozen=True)
class Pattern:
    """Regular-expression field key, matched with search semantics."""

    regex: re.Pattern

    @property
    def label(self) -> str:
        return f"/{self.regex.pattern}/"

    def captures(self, name: Any) -> Optional[tuple[Any, ...]]:
        """Captured groups when *name* matches, else ``None``."""
        match = self.regex.search(str(name))
        return match.groups() if match else None


FieldKey = Union[Literal, Pattern]


def _compile(source: str, path: str) -> re.Pattern:
    try:
        return re.compile(source)
    except re.error as exc:
        raise MalformedRule(path, f"invalid pattern {source!r}: {exc}") from exc


def field_key(raw: Any, path: str = "") -> FieldKey:
    """Classify a raw params key: ``/regex/`` strings and compiled patterns
    are :class:`Pattern` keys, everything else is a :class:`Literal`."""
    if isinstance(raw, re.Pattern):
        return Pattern(raw)
    if isinstance(raw, str) and len(raw) > 1 and raw.startswith("/") and raw.endswith("/"):
        return Pattern(_compile(raw[1:-1], path))
    return Literal(raw)


# --------------------------------------------------------------------------- #
# Field kinds                                                                 #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Scalar:
    """A plain value; nothing to recurse into."""


@dataclass(frozen=True)
class ArrayOf:
    """A list whose items follow *item* (or are unchecked when ``None``)."""

    item: Optional["RuleSet"]


@dataclass(frozen=True)
class HashOf:
    """A mapping whose entries follow *keys*."""

    keys: "ParamTree"


FieldKind = Union[Scalar, ArrayOf, HashOf]

SCALAR = Scalar()

# --------------------------------------------------------------------------- #
# Rule sets                                                                   #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Rule:
    """One predicate rule of a field.

    ``inline`` rules carry their own function (``validate`` or any rule whose
    configured value is callable); they receive the field's regex captures
    instead of configured arguments.
    """

    name: str
    args: tuple[Any, ...]
    predicate: Predicate
    inline: bool = False


@dataclass(frozen=True)
class RuleSet:
    label: str
    rules: tuple[Rule, ...]
    kind: FieldKind = SCALAR
    required: bool = False
    forbidden: bool = False
    parse: Optional[Callable[..., Any]] = None
    preprocess: Optional[Callable[..., Any]] = None
    postprocess: Optional[Callable[..., Any]] = None
    default: Any = field(default=_MISSING, repr=False)
    source: Mapping[str, Any] = field(default_factory=dict, repr=False)

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def default_value(self) -> Any:
        """The configured default; callables are invoked with no arguments."""
        if callable(self.default):
            return self.default()
        return _copy_default(self.default)


def _copy_default(value: Any) -> Any:
    # Defaults are shared by every call; hand out copies of containers.
    if isinstance(value, Mapping):
        return {k: _copy_default(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy_default(v) for v in value]
    return value


@dataclass(frozen=True)
class ParamTree:
    """The field keys of one input level.

    ``literals`` and ``patterns`` hold rule sets with the level's ``_all``
    rules already merged in; ``every`` is the bare ``_all`` rule set.
    """

    label: str
    literals: Mapping[Any, RuleSet]
    patterns: tuple[tuple[Pattern, RuleSet], ...] = ()
    every: Optional[RuleSet] = None
    _builder: Optional["RuleBuilder"] = field(default=None, compare=False, repr=False)
    _combined: dict = field(default_factory=dict, compare=False, repr=False)

    def combine(self, indexes: tuple[int, ...]) -> RuleSet:
        """Rule set for a field matched by several pattern keys at once.

        The matching patterns' rules are deep-merged in declaration order.
        """
        if len(indexes) == 1:
            return self.patterns[indexes[0]][1]
        combined = self._combined.get(indexes)
        if combined is None:
            raw: dict[str, Any] = {}
            for idx in indexes:
                raw = deep_merge(raw, self.patterns[idx][1].source)
            labels = "|".join(self.patterns[idx][0].label for idx in indexes)
            combined = self._builder.ruleset(raw, join_path(self.label, labels))
            self._combined[indexes] = combined
        return combined


# --------------------------------------------------------------------------- #
# Groups                                                                      #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class GroupSpec:
    """Either a ``params`` group (named fields, parsed positionally) or a
    ``regex`` group (every matching field, parsed as a list of matches)."""

    name: str
    parse: Callable[..., Any]
    params: Optional[tuple[str, ...]] = None
    regex: Optional[Pattern] = None


# --------------------------------------------------------------------------- #
# Schemas                                                                     #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Schema:
    """A registered, not yet inheritance-resolved, schema definition.

    ``ignore_missing`` is ``None`` when the definition does not set it, so
    that an inheriting schema keeps its parent's setting.
    """

    name: str
    inherits_from: tuple[str, ...] = ()
    ignore_missing: Optional[bool] = None
    params: Mapping[Any, Any] = field(default_factory=dict)
    groups: Mapping[str, Any] = field(default_factory=dict)
    postprocess: Optional[Callable[..., Any]] = None

    @classmethod
    def from_definition(cls, definition: Mapping[str, Any], name: Optional[str] = None) -> "Schema":
        if not isinstance(definition, Mapping):
            raise MalformedRule(name or "<schema>", "schema definition must be a mapping")
        name = name if name is not None else definition.get("name")
        if not isinstance(name, str) or not name:
            raise MalformedRule("<schema>", "schema definition needs a non-empty 'name'")
        if "handle_unknown" in definition:
            raise MalformedRule(name, "'handle_unknown' is a registry setting, not a schema key")
        extras = set(definition) - _SCHEMA_KEYS
        if extras:
            raise MalformedRule(name, f"unexpected schema keys {sorted(extras)}")

        parents = definition.get("inherits_from") or ()
        if isinstance(parents, str):
            parents = (parents,)
        elif not isinstance(parents, Sequence):
            raise MalformedRule(name, "'inherits_from' must be a name or a list of names")

        params = definition.get("params") or {}
        groups = definition.get("groups") or {}
        if not isinstance(params, Mapping):
            raise MalformedRule(join_path(name, "params"), "must be a mapping")
        if not isinstance(groups, Mapping):
            raise MalformedRule(join_path(name, "groups"), "must be a mapping")
        postprocess = definition.get("postprocess")
        if postprocess is not None and not callable(postprocess):
            raise MalformedRule(join_path(name, "postprocess"), "must be callable")

        ignore_missing = definition.get("ignore_missing")
        return cls(
            name=name,
            inherits_from=tuple(parents),
            ignore_missing=None if ignore_missing is None else bool(ignore_missing),
            params=params,
            groups=groups,
            postprocess=postprocess,
        )


@dataclass(frozen=True)
class CompiledTree:
    """The effective schema: ``lineage`` lists the merge order, root first."""

    name: str
    lineage: tuple[str, ...]
    params: ParamTree
    ignore_missing: bool = False
    groups: tuple[GroupSpec, ...] = ()
    postprocess: Optional[Callable[..., Any]] = None


# --------------------------------------------------------------------------- #
# Builder                                                                     #
# --------------------------------------------------------------------------- #

class RuleBuilder:
    """Turns merged raw definitions into descriptors, resolving every
    predicate against *validators* up front."""

    def __init__(self, validators: ValidatorRegistry):
        self.validators = validators

    def compiled(self, merged: Schema, lineage: tuple[str, ...]) -> CompiledTree:
        name = merged.name
        return CompiledTree(
            name=name,
            lineage=lineage,
            params=self.tree(merged.params, name),
            ignore_missing=bool(merged.ignore_missing),
            groups=tuple(
                self.group(group, raw, join_path(name, f"groups.{group}"))
                for group, raw in merged.groups.items()
            ),
            postprocess=merged.postprocess,
        )

    def tree(self, raw_params: Any, path: str) -> ParamTree:
        if not isinstance(raw_params, Mapping):
            raise MalformedRule(path, "field map must be a mapping")
        every_raw = raw_params.get(ALL_KEY)
        if every_raw is not None and not isinstance(every_raw, Mapping):
            raise MalformedRule(join_path(path, ALL_KEY), "rule set must be a mapping")

        literals: dict[Any, RuleSet] = {}
        patterns: list[tuple[Pattern, RuleSet]] = []
        for raw_key, raw_rules in raw_params.items():
            if raw_key == ALL_KEY:
                continue
            key = field_key(raw_key, path)
            key_path = join_path(path, key.label)
            if not isinstance(raw_rules, Mapping):
                raise MalformedRule(key_path, "rule set must be a mapping")
            if every_raw:
                raw_rules = deep_merge(every_raw, raw_rules)
            rules = self.ruleset(raw_rules, key_path)
            if isinstance(key, Pattern):
                patterns.append((key, rules))
            else:
                literals[key.name] = rules

        every = self.ruleset(every_raw, join_path(path, ALL_KEY)) if every_raw is not None else None
        return ParamTree(
            label=path,
            literals=literals,
            patterns=tuple(patterns),
            every=every,
            _builder=self,
        )

    def ruleset(self, raw: Any, path: str) -> RuleSet:
        if not isinstance(raw, Mapping):
            raise MalformedRule(path, "rule set must be a mapping")

        rules: list[Rule] = []
        for name, value in raw.items():
            if name in STRUCTURAL or (name in HOOKS and name != "validate"):
                continue
            if callable(value):
                rules.append(Rule(name, (), value, inline=True))
            elif name == "validate":
                raise MalformedRule(join_path(path, name), "'validate' must be callable")
            else:
                rules.append(Rule(name, tuple(_as_args(value)), self.validators.resolve(name)))

        hooks = {}
        for hook in ("parse", "preprocess", "postprocess"):
            fn = raw.get(hook)
            if fn is not None and not callable(fn):
                raise MalformedRule(join_path(path, hook), f"'{hook}' must be callable")
            hooks[hook] = fn

        return RuleSet(
            label=path,
            rules=tuple(rules),
            kind=self._kind(raw, path),
            required=_flag(raw.get("required")),
            forbidden=_flag(raw.get("forbidden")),
            default=raw.get("default", _MISSING),
            source=raw,
            **hooks,
        )

    def _kind(self, raw: Mapping[str, Any], path: str) -> FieldKind:
        is_array = _flag(raw.get("array"))
        is_hash = _flag(raw.get("hash"))
        if is_array and is_hash:
            raise MalformedRule(path, "a field cannot be both 'array' and 'hash'")
        if is_hash:
            keys = raw.get("keys")
            if not isinstance(keys, Mapping):
                raise MalformedRule(path, "'hash' field without 'keys'")
            return HashOf(self.tree(keys, path))
        if "keys" in raw:
            raise MalformedRule(path, "'keys' given on a field that is not a 'hash'")
        if is_array:
            values = raw.get("values")
            item = self.ruleset(values, join_path(path, "values")) if values is not None else None
            return ArrayOf(item)
        if "values" in raw:
            raise MalformedRule(path, "'values' given on a field that is not an 'array'")
        return SCALAR

    def group(self, name: str, raw: Any, path: str) -> GroupSpec:
        if not isinstance(raw, Mapping):
            raise MalformedRule(path, "group must be a mapping")
        parse = raw.get("parse")
        if not callable(parse):
            raise MalformedRule(path, "group without a callable 'parse'")
        if ("params" in raw) == ("regex" in raw):
            raise MalformedRule(path, "group needs exactly one of 'params' or 'regex'")

        if "params" in raw:
            params = raw["params"]
            if isinstance(params, str) or not isinstance(params, Sequence):
                raise MalformedRule(path, "'params' must be a list of field names")
            return GroupSpec(name=name, parse=parse, params=tuple(params))

        regex = raw["regex"]
        key = field_key(regex, path)
        if isinstance(key, Literal):
            if not isinstance(regex, str):
                raise MalformedRule(path, "'regex' must be a pattern")
            key = Pattern(_compile(regex, path))
        return GroupSpec(name=name, parse=parse, regex=key)


def _flag(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return bool(value) and bool(value[0])
    return bool(value)
