"""
parser.py - generic command-line / JSON / mapping input loader
================================================================

Turns whatever a caller has at hand into the plain ``dict`` that
:meth:`form_schema.registry.Registry.process` expects.  Nothing here
validates; it only normalises the *source*.

Public API
----------
`build_arg_parser(schema: Mapping) -> argparse.ArgumentParser`
    Construct an `argparse` instance with one flag per literal field of a
    schema definition.

`parse_input(source=None, *, schema) -> dict`
    Convert user-supplied *source* (CLI string / Path / JSON literal / Mapping)
    into a plain `dict` keyed by the schema's field names.
"""

from __future__ import annotations

import argparse
import json
import shlex
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

from .rules import ALL_KEY, Literal, field_key

__all__ = [
    "build_arg_parser",
    "parse_input",
]

# --------------------------------------------------------------------------- #
# Parser builder                                                              #
# --------------------------------------------------------------------------- #

def build_arg_parser(schema: Mapping[str, Any]) -> argparse.ArgumentParser:
    """Return an :pyclass:`argparse.ArgumentParser` for *schema*.

    Parameters
    ----------
    schema : Mapping[str, Any]
        A schema definition.  Every literal, non-``hash`` field in its
        ``params`` becomes a ``--<field-name>`` flag: ``integer`` fields parse
        as ``int``, ``one_of`` fields restrict ``choices`` and ``array`` fields
        take one or more values.  Pattern keys and nested hashes can only be
        supplied through ``--config``.
    """

    p = argparse.ArgumentParser(
        description=f"Input for schema '{schema.get('name', '')}'",
        fromfile_prefix_chars="@",
        add_help=False,
    )

    # standard meta flags ----------------------------------------------------
    p.add_argument("-h", "--help", action="help", help="Show this help message and exit.")

    p.add_argument(
        "--config",
        metavar="FILE",
        help="JSON file containing full input object; overrides all other flags.",
    )

    for name, rules in (schema.get("params") or {}).items():
        if name == ALL_KEY or not isinstance(field_key(name), Literal):
            continue
        if not isinstance(rules, Mapping) or rules.get("hash"):
            continue
        flag   = f"--{str(name).replace('_', '-')}"
        kwargs: dict[str, Any] = {
            "dest": name,
            "type": int if rules.get("integer") else str,
            "default": argparse.SUPPRESS,
        }

        if rules.get("array"):
            kwargs["nargs"] = "+"

        candidates = rules.get("one_of")
        if isinstance(candidates, (list, tuple)):
            kwargs["choices"] = list(candidates)

        p.add_argument(flag, **kwargs)

    return p

# --------------------------------------------------------------------------- #
# Input parsing utility                                                       #
# --------------------------------------------------------------------------- #

def _json_object(text: str, origin: str) -> dict[str, Any]:
    """Decode *text* and insist on a JSON object; *origin* names the source."""
    loaded = json.loads(text)
    if not isinstance(loaded, dict):
        raise ValueError(f"{origin}: input must be a JSON object, got {type(loaded).__name__}")
    return loaded


def parse_input(
    source: None | str | Path | Sequence[str] | Mapping[str, Any] = None,
    *,
    schema: Mapping[str, Any],
) -> dict[str, Any]:
    """Convert *source* to a *raw* ``dict`` (no validation).

    Parameters
    ----------
    source
        Supported variants:
        * ``Mapping`` - copied directly.
        * ``Path`` - JSON file on disk holding one object.
        * ``str``  - interpreted as: existing file path → load; else JSON literal → load; else CLI string.
        * ``Sequence[str]`` - treated as CLI tokens.
        * ``None`` - default to ``sys.argv[1:]``.
    schema
        The schema definition driving CLI flag generation.

    Returns
    -------
    dict
        Raw key-value mapping with only the options provided by the user.  If
        ``--config`` is used the returned dict is exactly that file’s object;
        every JSON source must decode to an object or ``ValueError`` is raised.
    """

    # Mapping - already dict-like ------------------------------------------
    if isinstance(source, Mapping):
        return dict(source)

    # Path - read JSON file -------------------------------------------------
    if isinstance(source, Path):
        return _json_object(source.read_text(encoding="utf-8"), str(source))

    # Decide how to treat *source* -----------------------------------------
    argv: list[str]
    if isinstance(source, str):
        p = Path(source)
        if p.is_file():
            return _json_object(p.read_text(encoding="utf-8"), source)
        try:
            return _json_object(source, "JSON literal")
        except json.JSONDecodeError:
            argv = shlex.split(source)
    elif source is None:
        argv = sys.argv[1:]
    elif isinstance(source, Sequence) and not isinstance(source, (str, bytes)):
        argv = list(source)
    else:
        raise TypeError(f"Unsupported type for parse_input: {type(source)}")

    # CLI style - use argparse ---------------------------------------------
    parser = build_arg_parser(schema)
    namespace, unknown = parser.parse_known_args(argv)
    if unknown:
        raise ValueError(f"Unknown argument(s): {unknown}. Use --help.")
    ns_dict      = vars(namespace)

    # --config overrides everything else -----------------------------------
    if config_file := ns_dict.pop("config", None):
        cfg_path = Path(config_file)
        if not cfg_path.is_file():
            raise FileNotFoundError(cfg_path)
        return _json_object(cfg_path.read_text(encoding="utf-8"), f"--config {cfg_path}")

    return ns_dict
