"""
validations.py - the validator registry and the built-in predicates
===================================================================

Every non-hook rule name in a schema dispatches to a *predicate*: a pure
function ``predicate(value, *args) -> bool`` where ``args`` are the rule's
configured arguments (``length_between: [3, 40]`` calls
``length_between(value, 3, 40)``).

Public API
----------
BUILTINS
    Read-only mapping of the predicates every registry starts with.

ValidatorRegistry
    Per-registry table of user predicates layered over :data:`BUILTINS`.
"""

from __future__ import annotations

import logging
import numbers
import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Optional

from .errors import DuplicateNotAllowed, UnknownValidator
from .utils import _is_blank, _size

__all__ = [
    "BUILTINS",
    "HOOKS",
    "STRUCTURAL",
    "Predicate",
    "ValidatorRegistry",
]

log = logging.getLogger(__name__)

Predicate = Callable[..., Any]

# Rule names that carry functions/values rather than predicate arguments.
HOOKS = frozenset({"validate", "parse", "preprocess", "postprocess", "default"})
# Rule names that carry a nested item/key schema.
STRUCTURAL = frozenset({"values", "keys"})

# --------------------------------------------------------------------------- #
# Built-in predicates                                                         #
# --------------------------------------------------------------------------- #

_DIGITS_RE = re.compile(r"\d+")


def _number(value: Any) -> Optional[float]:
    """Numeric view of *value*, or ``None`` when it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def required(value: Any, flag: Any = True) -> bool:
    return not flag or not _is_blank(value)


def forbidden(value: Any, flag: Any = True) -> bool:
    return not flag or _is_blank(value)


def length_between(value: Any, min_len: int, max_len: int) -> bool:
    """String length (or item count for sequences) within ``[min, max]``."""
    return min_len <= _size(value) <= max_len


def min_length(value: Any, min_len: int) -> bool:
    return _size(value) >= min_len


def max_length(value: Any, max_len: int) -> bool:
    return _size(value) <= max_len


def exact_length(value: Any, length: int) -> bool:
    return _size(value) == length


def integer(value: Any, flag: Any = True) -> bool:
    """Digits only; negative numbers, floats and booleans do not qualify."""
    if not flag:
        return True
    if isinstance(value, bool) or value is None:
        return False
    return _DIGITS_RE.fullmatch(str(value)) is not None


def value_between(value: Any, min_val: float, max_val: float) -> bool:
    """Numeric comparison; absent or non-numeric values fail."""
    number = _number(value)
    return number is not None and min_val <= number <= max_val


def min_value(value: Any, min_val: float) -> bool:
    number = _number(value)
    return number is not None and number >= min_val


def max_value(value: Any, max_val: float) -> bool:
    number = _number(value)
    return number is not None and number <= max_val


def array(value: Any, flag: Any = True) -> bool:
    return not flag or isinstance(value, (list, tuple))


def hash(value: Any, flag: Any = True) -> bool:  # noqa: A001 - rule name
    return not flag or isinstance(value, Mapping)


def one_of(value: Any, *candidates: Any) -> bool:
    """Exact equality against any of *candidates*."""
    return any(value == candidate for candidate in candidates)


BUILTINS: Mapping[str, Predicate] = MappingProxyType({
    "required":       required,
    "forbidden":      forbidden,
    "length_between": length_between,
    "min_length":     min_length,
    "max_length":     max_length,
    "exact_length":   exact_length,
    "integer":        integer,
    "value_between":  value_between,
    "min_value":      min_value,
    "max_value":      max_value,
    "array":          array,
    "hash":           hash,
    "one_of":         one_of,
})

# --------------------------------------------------------------------------- #
# Registry                                                                    #
# --------------------------------------------------------------------------- #

class ValidatorRegistry:
    """Named predicates, user-registered first and built-ins second."""

    def __init__(self, *, immutable: bool = False):
        self._custom: dict[str, Predicate] = {}
        self._immutable = immutable

    def register(self, name: str, predicate: Predicate) -> None:
        if not callable(predicate):
            raise TypeError(f"validator '{name}' must be callable, got {type(predicate).__name__}")
        if name in HOOKS or name in STRUCTURAL:
            raise ValueError(f"'{name}' is a reserved rule name")
        if self._immutable and name in self._custom:
            raise DuplicateNotAllowed("validator", name)
        self._custom[name] = predicate
        log.debug("registered validator %r", name)

    def resolve(self, name: str) -> Optional[Predicate]:
        """Return the predicate for *name*.

        Hook and structural names resolve to ``None``; they are handled by the
        walker, not dispatched as predicates.
        """
        if name in HOOKS or name in STRUCTURAL:
            return None
        for source in (self._custom, BUILTINS):
            if name in source:
                return source[name]
        raise UnknownValidator(name)

    def __contains__(self, name: str) -> bool:
        return name in self._custom or name in BUILTINS
