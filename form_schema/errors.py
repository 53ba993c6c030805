"""
errors.py - exception taxonomy for the form-schema engine.

Every condition the engine detects on its own (a schema that cannot be
resolved, a rule that cannot be understood) is raised as a subclass of
:class:`SchemaError`.  Validation failures are *not* errors: they are
returned as data in the reject map.  Exceptions raised inside user hooks
propagate untouched.
"""

from __future__ import annotations

__all__ = [
    "SchemaError",
    "UnknownSchema",
    "CyclicInheritance",
    "MalformedRule",
    "UnknownValidator",
    "DuplicateNotAllowed",
]


class SchemaError(ValueError):
    """Base class for every engine-detected schema problem."""


class UnknownSchema(SchemaError):
    """Raised when a schema (or one of its ancestors) is not registered."""

    def __init__(self, name: str):
        super().__init__(f"unknown schema '{name}'")
        self.name = name


class CyclicInheritance(SchemaError):
    """Raised when a schema's inheritance chain loops back on itself."""

    def __init__(self, name: str, chain: tuple[str, ...] = ()):
        trail = " -> ".join((*chain, name)) if chain else name
        super().__init__(f"cyclic inheritance at '{name}': {trail}")
        self.name = name
        self.chain = chain


class MalformedRule(SchemaError):
    """Raised when a rule set cannot be turned into a rule descriptor."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class UnknownValidator(SchemaError):
    """Raised when a rule name resolves to no predicate."""

    def __init__(self, name: str):
        super().__init__(f"no validator registered under '{name}'")
        self.name = name


class DuplicateNotAllowed(SchemaError):
    """Raised by an immutable registry on re-registration."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} '{name}' is already registered")
        self.kind = kind
        self.name = name
