"""
validator.py - the recursive validation / transformation walker
===============================================================

One call to :func:`process` walks an input mapping against a
:class:`~form_schema.rules.CompiledTree` and produces two things:

* the *output*: the input with defaults filled in, ``parse`` hooks applied,
  group results merged and unknown fields handled per policy;
* the *reject map*: dotted path -> list of failure descriptors, e.g.
  ``{"education.1.school": [{"rule": "min_length", "args": [4]}]}``.

Each mapping level (the top level and every nested ``hash``) is handled in
the same order:

1. *prepare* - fill ``default`` values for absent literal fields and run
   ``preprocess`` hooks;
2. *validate* - run every configured rule of every referenced field,
   descending into nested arrays and hashes, and record unknown fields
   under the ``reject`` policy;
3. *transform* - run ``postprocess`` on clean fields, then ``parse`` (whose
   mapping is merged into the output, two levels deep) or copy the value.

Groups and the schema's ``postprocess`` run once, on the top level.
Validation failures never remove a value from the output.  Exceptions from
user hooks are not caught.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any, Optional

from .matcher import Match, match
from .rules import ArrayOf, CompiledTree, GroupSpec, HashOf, ParamTree, RuleSet
from .utils import _is_blank, deep_merge, join_path

__all__ = [
    "UnknownPolicy",
    "RejectMap",
    "process",
]

RejectMap = dict[str, list[dict[str, Any]]]


class UnknownPolicy(str, enum.Enum):
    """What happens to input fields no rule key references.

    A field covered only by its level's ``_all`` rules counts as unknown
    under ``remove`` and ``reject``; under ``ignore`` the ``_all`` rules
    validate and transform it.
    """

    IGNORE = "ignore"   # copied to the output untouched
    REMOVE = "remove"   # dropped from the output
    REJECT = "reject"   # recorded as {"unknown": True}


def _parsed(result: Any, label: str) -> Mapping[Any, Any]:
    if result is None:
        return {}
    if not isinstance(result, Mapping):
        raise TypeError(f"{label}: parse hook must return a mapping or None, got {type(result).__name__}")
    return result


class _Walker:
    """Per-call state: the policy in force and the rejects collected so far."""

    def __init__(self, policy: UnknownPolicy, ignore_missing: bool):
        self.policy = policy
        self.ignore_missing = ignore_missing
        self.rejects: RejectMap = {}
        self.count = 0

    # ------------------------------------------------------------------ #
    # Rejects                                                            #
    # ------------------------------------------------------------------ #
    def reject(self, path: str, descriptor: dict[str, Any]) -> None:
        self.rejects.setdefault(path, []).append(descriptor)
        self.count += 1

    def governing(self, found: Optional[Match]) -> Optional[Match]:
        """Fields only ``_all`` covers are unknown unless the policy is ``ignore``."""
        if found is not None and not found.referenced and self.policy is not UnknownPolicy.IGNORE:
            return None
        return found

    # ------------------------------------------------------------------ #
    # Levels                                                             #
    # ------------------------------------------------------------------ #
    def level(self, data: Mapping[Any, Any], tree: ParamTree, path: str) -> tuple[dict, dict]:
        """Validate and transform one mapping level.

        Returns the level's output and its prepared values (defaults and
        preprocessing applied), which groups read from.
        """
        values = dict(data)
        for name, rules in tree.literals.items():
            if rules.has_default and _is_blank(values.get(name)):
                values[name] = rules.default_value()

        matches: dict[Any, Optional[Match]] = {name: self.governing(match(name, tree)) for name in values}
        for name, found in matches.items():
            if found is not None and found.rules.preprocess is not None:
                values[name] = found.rules.preprocess(values[name], *found.captures)

        # validate pass
        processed: dict[Any, tuple[Any, bool]] = {}
        for name, found in matches.items():
            field_path = join_path(path, name)
            if found is None:
                if self.policy is UnknownPolicy.REJECT:
                    self.reject(field_path, {"unknown": True})
                continue
            before = self.count
            self.check(values[name], found, field_path)
            value = self.descend(values[name], found.rules, field_path)
            processed[name] = (value, self.count == before)

        for name, rules in tree.literals.items():
            if name not in values:
                self.check(None, Match(rules), join_path(path, name))

        # transform pass
        output: dict[Any, Any] = {}
        for name, found in matches.items():
            if found is None:
                if self._keep_unknown():
                    output = deep_merge(output, {name: values[name]}, depth=2)
                continue
            value, clean = processed[name]
            output = deep_merge(output, self.emit(name, value, found, clean), depth=2)
        return output, values

    def _keep_unknown(self) -> bool:
        if self.policy is UnknownPolicy.REMOVE:
            return False
        if self.policy is UnknownPolicy.REJECT:
            return not self.ignore_missing
        return True

    # ------------------------------------------------------------------ #
    # Fields                                                             #
    # ------------------------------------------------------------------ #
    def check(self, value: Any, found: Match, path: str) -> None:
        """Run the field's own rules, recording every failure at *path*."""
        rules = found.rules
        if _is_blank(value):
            if rules.forbidden or not rules.required:
                return
            # absent but required: only the requirement itself is reported
            candidates = [rule for rule in rules.rules if rule.name == "required"]
        else:
            candidates = rules.rules

        for rule in candidates:
            if rule.inline:
                ok = rule.predicate(value, *found.captures)
            else:
                ok = rule.predicate(value, *rule.args)
            if not ok:
                self.reject(path, {"rule": rule.name, "args": list(rule.args)})

    def descend(self, value: Any, rules: RuleSet, path: str) -> Any:
        """Recurse into a nested array or hash; returns the transformed value."""
        kind = rules.kind
        if isinstance(kind, ArrayOf) and kind.item is not None and isinstance(value, (list, tuple)):
            return [self.item(item, kind.item, join_path(path, idx)) for idx, item in enumerate(value)]
        if isinstance(kind, HashOf) and isinstance(value, Mapping):
            output, _ = self.level(value, kind.keys, path)
            return output
        return value

    def item(self, value: Any, rules: RuleSet, path: str) -> Any:
        """One array item; a ``parse`` result replaces the item."""
        if rules.preprocess is not None:
            value = rules.preprocess(value)
        before = self.count
        found = Match(rules)
        self.check(value, found, path)
        value = self.descend(value, rules, path)
        if rules.postprocess is not None and self.count == before:
            value = rules.postprocess(value)
        if rules.parse is not None:
            parsed = rules.parse(value)
            if parsed is not None:
                value = parsed
        return value

    def emit(self, name: Any, value: Any, found: Match, clean: bool) -> Mapping[Any, Any]:
        """The output contribution of one referenced field."""
        rules = found.rules
        if clean and rules.postprocess is not None:
            value = rules.postprocess(value, *found.captures)
        if rules.parse is None:
            return {name: value}
        return _parsed(rules.parse(value, *found.captures), rules.label)

    # ------------------------------------------------------------------ #
    # Groups                                                             #
    # ------------------------------------------------------------------ #
    def group(self, group: GroupSpec, values: Mapping[Any, Any], tree: ParamTree) -> Mapping[Any, Any]:
        if group.params is not None:
            for name in group.params:
                rules = tree.literals.get(name)
                if rules is not None and rules.required and _is_blank(values.get(name)):
                    return {}
            result = group.parse(*(values.get(name) for name in group.params))
        else:
            found = []
            for name, value in values.items():
                captures = group.regex.captures(name)
                if captures is not None:
                    found.append({"value": value, "captures": list(captures)})
            result = group.parse(found)
        return _parsed(result, f"groups.{group.name}")


def process(
    tree: CompiledTree,
    data: Mapping[Any, Any],
    *,
    policy: UnknownPolicy = UnknownPolicy.IGNORE,
) -> tuple[dict[Any, Any], RejectMap]:
    """Validate and transform *data* against *tree*.

    Returns ``(output, rejects)``; ``rejects`` is empty when every rule
    passed.  The schema's ``postprocess`` hook only sees clean output.
    """
    walker = _Walker(UnknownPolicy(policy), tree.ignore_missing)
    output, values = walker.level(data, tree.params, "")

    for group in tree.groups:
        output = deep_merge(output, walker.group(group, values, tree.params), depth=2)

    if tree.postprocess is not None and not walker.rejects:
        result = tree.postprocess(output)
        if result is not None:
            output = result
    return output, walker.rejects
