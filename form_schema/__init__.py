"""
form_schema – declarative validation and transformation of form/API input.
"""
from .errors import (
    SchemaError,
    UnknownSchema,
    CyclicInheritance,
    MalformedRule,
    UnknownValidator,
    DuplicateNotAllowed,
)
from .registry import Registry, Result
from .validator import UnknownPolicy
from .utils import deep_merge
from .parser import parse_input
from .loader import load_schema, load_registry

__all__ = [
    "Registry",
    "Result",
    "UnknownPolicy",
    "SchemaError",
    "UnknownSchema",
    "CyclicInheritance",
    "MalformedRule",
    "UnknownValidator",
    "DuplicateNotAllowed",
    "deep_merge",
    "parse_input",
    "load_schema",
    "load_registry",
]
