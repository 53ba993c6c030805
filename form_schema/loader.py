"""
loader.py - schema definitions stored as JSON files.

JSON cannot hold functions, so hook values are written as names and bound
to real callables at load time::

    {"name": "post",
     "params": {"section": {"integer": true, "parse": "section_name"}},
     "groups": {"date": {"params": ["year", "mon", "day"], "parse": "@join_date"}}}

``validate`` / ``parse`` / ``preprocess`` / ``postprocess`` values may be
written ``"name"`` or ``"@name"``; a ``default`` is only treated as a hook
reference when written ``"@name"`` (any other default is a literal value).

Public API
----------
load_schema(path, *, hooks=None) : one definition, hooks bound
load_schemas(directory, *, hooks=None) : every ``*.json`` in a directory
load_registry(directory, *, hooks=None, **options) : a populated Registry
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from .errors import MalformedRule
from .registry import Registry
from .utils import join_path

__all__ = [
    "load_schema",
    "load_schemas",
    "load_registry",
]

Hooks = Mapping[str, Callable[..., Any]]

_FUNCTION_KEYS = ("validate", "parse", "preprocess", "postprocess")

# --------------------------------------------------------------------------- #
# Helpers                                                                     #
# --------------------------------------------------------------------------- #

def _read(path: Path) -> Mapping[str, Any]:
    """Read & parse a JSON schema, raising crisp errors on failure."""
    try:
        with path.open(encoding="utf-8") as fd:
            return json.load(fd)
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Schema not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def _lookup(ref: str, hooks: Hooks, path: str) -> Callable[..., Any]:
    name = ref[1:] if ref.startswith("@") else ref
    try:
        return hooks[name]
    except KeyError:
        raise MalformedRule(path, f"no hook named '{name}'") from None


def _bind_rules(rules: Any, hooks: Hooks, path: str) -> None:
    if not isinstance(rules, dict):
        return
    for key in _FUNCTION_KEYS:
        if isinstance(rules.get(key), str):
            rules[key] = _lookup(rules[key], hooks, join_path(path, key))
    default = rules.get("default")
    if isinstance(default, str) and default.startswith("@"):
        rules["default"] = _lookup(default, hooks, join_path(path, "default"))
    if isinstance(rules.get("keys"), dict):
        _bind_params(rules["keys"], hooks, join_path(path, "keys"))
    if "values" in rules:
        _bind_rules(rules["values"], hooks, join_path(path, "values"))


def _bind_params(params: Any, hooks: Hooks, path: str) -> None:
    if not isinstance(params, dict):
        return
    for name, rules in params.items():
        _bind_rules(rules, hooks, join_path(path, name))


def _bind(definition: dict[str, Any], hooks: Hooks) -> dict[str, Any]:
    name = str(definition.get("name", "<schema>"))
    _bind_params(definition.get("params"), hooks, join_path(name, "params"))
    for group, group_def in (definition.get("groups") or {}).items():
        if isinstance(group_def, dict) and isinstance(group_def.get("parse"), str):
            group_def["parse"] = _lookup(group_def["parse"], hooks, join_path(name, f"groups.{group}.parse"))
    if isinstance(definition.get("postprocess"), str):
        definition["postprocess"] = _lookup(definition["postprocess"], hooks, join_path(name, "postprocess"))
    return definition


# --------------------------------------------------------------------------- #
# Public utilities                                                            #
# --------------------------------------------------------------------------- #

def load_schema(path: str | Path, *, hooks: Optional[Hooks] = None) -> dict[str, Any]:
    """Load one schema definition from *path* and bind its hook names.

    A definition without a ``name`` is named after the file's stem.
    """
    p = Path(path)
    data = _read(p)
    if not isinstance(data, dict):
        raise ValueError(f"Schema file {p} must contain a JSON object")
    definition = copy.deepcopy(data)
    definition.setdefault("name", p.stem)
    return _bind(definition, hooks or {})


def load_schemas(directory: str | Path, *, hooks: Optional[Hooks] = None) -> list[dict[str, Any]]:
    """Load every ``*.json`` definition in *directory*, in file-name order."""
    d = Path(directory)
    if not d.is_dir():
        raise FileNotFoundError(f"Schema directory not found: {d}")
    return [load_schema(p, hooks=hooks) for p in sorted(d.glob("*.json"))]


def load_registry(directory: str | Path, *, hooks: Optional[Hooks] = None, **options: Any) -> Registry:
    """A :class:`~form_schema.registry.Registry` holding every schema in
    *directory*; *options* are passed to the registry constructor."""
    return Registry(*load_schemas(directory, hooks=hooks), **options)
