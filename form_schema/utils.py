"""
utils.py – shared, low-level utilities for the form-schema package.

This module consolidates common helpers for:
- Deep merging of nested mappings (inheritance and parse-output aggregation)
- Dotted reject-path construction
- Blank-value and size checks used by the built-in validators
"""

from __future__ import annotations

from collections.abc import Mapping, Sized
from typing import Any, Optional

__all__ = [
    "deep_merge",
    "join_path",
]

# --------------------------------------------------------------------------- #
# Merging                                                                     #
# --------------------------------------------------------------------------- #

def deep_merge(
    base: Mapping[Any, Any],
    override: Mapping[Any, Any],
    *,
    depth: Optional[int] = None,
) -> dict[Any, Any]:
    """Return a new dict with *override* merged over *base*.

    When both sides hold a mapping under the same key the two mappings are
    merged recursively; any other value in *override* replaces the one in
    *base*.  Neither argument is modified.

    Parameters
    ----------
    base, override : Mapping
        The mappings to merge; keys of *override* win.
    depth : int, optional
        Number of mapping levels to merge.  ``1`` is a plain ``dict.update``,
        ``2`` also merges mappings found one level down, and so on.  ``None``
        (the default) merges without limit.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if (
            isinstance(current, Mapping)
            and isinstance(value, Mapping)
            and (depth is None or depth > 1)
        ):
            merged[key] = deep_merge(
                current, value, depth=None if depth is None else depth - 1
            )
        else:
            merged[key] = value
    return merged


# --------------------------------------------------------------------------- #
# Paths                                                                       #
# --------------------------------------------------------------------------- #

def join_path(path: str, key: Any) -> str:
    """Append *key* (a field name or an array index) to a dotted *path*."""
    return f"{path}.{key}" if path else str(key)


# --------------------------------------------------------------------------- #
# Value helpers                                                               #
# --------------------------------------------------------------------------- #

def _is_blank(value: Any) -> bool:
    """True for values the engine treats as absent: ``None`` and ``""``."""
    return value is None or (isinstance(value, str) and value == "")


def _size(value: Any) -> int:
    """String length, or item count for sequences and mappings."""
    if value is None:
        return 0
    if isinstance(value, (str, Sized)):
        return len(value)
    return len(str(value))


def _as_args(value: Any) -> list[Any]:
    """Normalise a configured rule argument into a positional list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
