"""
matcher.py - which rule set governs an input field
==================================================

Precedence, per level:

1. an exact :class:`~form_schema.rules.Literal` key wins outright;
2. otherwise every :class:`~form_schema.rules.Pattern` key that matches
   contributes, merged in declaration order, and the captures of the first
   matching pattern are handed to the field's hooks;
3. otherwise the level's ``_all`` rules, when present; such a match is
   flagged as not *referenced*;
4. otherwise the field is *unreferenced*.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .rules import ParamTree, RuleSet

__all__ = [
    "Match",
    "match",
]


@dataclass(frozen=True)
class Match:
    rules: RuleSet
    captures: tuple[Any, ...] = ()
    referenced: bool = True


def match(name: Any, tree: ParamTree) -> Optional[Match]:
    """Return the :class:`Match` for field *name*, or ``None`` if unreferenced."""
    rules = tree.literals.get(name)
    if rules is not None:
        return Match(rules)

    hits: list[int] = []
    captures: Optional[tuple[Any, ...]] = None
    for idx, (pattern, _) in enumerate(tree.patterns):
        groups = pattern.captures(name)
        if groups is None:
            continue
        hits.append(idx)
        if captures is None:
            captures = groups
    if hits:
        return Match(tree.combine(tuple(hits)), captures or ())

    if tree.every is not None:
        return Match(tree.every, referenced=False)
    return None
