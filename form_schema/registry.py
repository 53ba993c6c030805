"""
registry.py - High-level API: register schemas and validators, process input.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from . import resolver
from . import validator
from .errors import DuplicateNotAllowed, UnknownSchema
from .rules import CompiledTree, RuleBuilder, Schema
from .validations import Predicate, ValidatorRegistry
from .validator import RejectMap, UnknownPolicy

__all__ = [
    "Registry",
    "Result",
]

log = logging.getLogger(__name__)


@dataclass
class Result:
    """What one :meth:`Registry.process` call produced.

    ``output`` is provisional whenever ``rejects`` is non-empty: every field
    is still populated, but not necessarily valid.
    """

    output: dict[Any, Any]
    rejects: RejectMap = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.rejects


class Registry:
    """A set of named schemas plus the validators their rules dispatch to.

    Compiled trees are cached per schema name and registry version; every
    registration bumps the version.  Once populated, a registry may serve
    concurrent :meth:`process` calls; registering while processing must be
    serialised by the caller.
    """

    def __init__(
        self,
        *schemas: Mapping[str, Any],
        handle_unknown: UnknownPolicy | str = UnknownPolicy.IGNORE,
        immutable: bool = False,
    ):
        self._schemas: dict[str, Schema] = {}
        self._validators = ValidatorRegistry(immutable=immutable)
        self._builder = RuleBuilder(self._validators)
        self._cache: dict[tuple[str, int], CompiledTree] = {}
        self._lock = threading.Lock()
        self._immutable = immutable
        self._version = 0
        self.policy = UnknownPolicy(handle_unknown)
        for definition in schemas:
            self.register_schema(definition)

    @property
    def version(self) -> int:
        return self._version

    def __contains__(self, name: str) -> bool:
        return name in self._schemas

    # ------------------------------------------------------------------ #
    # Registration                                                       #
    # ------------------------------------------------------------------ #
    def register_schema(self, definition: Mapping[str, Any], name: Optional[str] = None) -> None:
        """Register (or replace) a schema definition.

        *name* defaults to the definition's own ``name`` key.
        """
        schema = Schema.from_definition(definition, name)
        if self._immutable and schema.name in self._schemas:
            raise DuplicateNotAllowed("schema", schema.name)
        self._schemas[schema.name] = schema
        self._bump()
        log.debug("registered schema %r (inherits from %s)", schema.name, list(schema.inherits_from))

    def register_validator(self, name: str, predicate: Predicate) -> None:
        self._validators.register(name, predicate)
        self._bump()

    def set_unknown_policy(self, policy: UnknownPolicy | str) -> None:
        self.policy = UnknownPolicy(policy)
        log.debug("unknown-field policy set to %r", self.policy.value)

    def _bump(self) -> None:
        with self._lock:
            self._version += 1
            self._cache.clear()

    # ------------------------------------------------------------------ #
    # Compilation & processing                                           #
    # ------------------------------------------------------------------ #
    def compile(self, name: str) -> CompiledTree:
        """Return the inheritance-resolved tree for *name* (cached)."""
        key = (name, self._version)
        tree = self._cache.get(key)
        if tree is not None:
            return tree
        tree = resolver.compile(name, self._schemas, self._builder)
        with self._lock:
            if key[1] == self._version:
                self._cache[key] = tree
        return tree

    def process(self, name: str, data: Any) -> Optional[Result]:
        """Validate and transform *data* against schema *name*.

        Returns ``None`` when *data* is not a mapping.  Raises
        :class:`~form_schema.errors.UnknownSchema` for an unregistered name.
        """
        if name not in self._schemas:
            raise UnknownSchema(name)
        if not isinstance(data, Mapping):
            return None
        tree = self.compile(name)
        output, rejects = validator.process(tree, data, policy=self.policy)
        if rejects:
            log.debug("schema %r: %d field(s) rejected", name, len(rejects))
        return Result(output=output, rejects=rejects)
