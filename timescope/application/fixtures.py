"""Fixture registry: builds records whose incidental attributes are generated.

A test states the attributes it depends on as overrides and leaves the
rest to the registered defaults. Defaults may be random, so two records
built without overrides need not agree on anything.
"""

from __future__ import annotations

import random
from collections import defaultdict
from typing import Any, DefaultDict, Dict, Mapping, Optional, Tuple

from ..domain.models import FixtureDefinition, GenerationContext, Record
from ..infrastructure.clock import Clock, current_clock
from ..infrastructure.identity import generate_record_id
from ..infrastructure.logging import get_logger

logger = get_logger(__name__)


class UnknownKind(LookupError):
    """Raised when building a record kind that was never registered."""


class DuplicateKind(ValueError):
    """Raised when a kind is registered again with a different definition."""


class InvalidOverride(ValueError):
    """Raised when an override is not allowed by the attribute's spec."""


class FixtureRegistry:
    """Registered record kinds plus the clock and random source used to build them."""

    def __init__(self, clock: Optional[Clock] = None, seed: Optional[int] = None) -> None:
        self.clock = clock
        self._seed = seed if seed is not None else random.SystemRandom().randrange(2**32)
        self.rng = random.Random(self._seed)
        self._definitions: Dict[str, FixtureDefinition] = {}
        self._sequences: DefaultDict[str, int] = defaultdict(int)
        self._built = 0
        logger.info("fixture_seed_selected", seed=self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def register(self, kind: str, definition: FixtureDefinition) -> None:
        existing = self._definitions.get(kind)
        if existing is not None:
            if existing == definition:
                return
            raise DuplicateKind(f"Fixture kind {kind!r} is already registered with a different definition")
        self._definitions[kind] = definition
        logger.info("fixture_kind_registered", kind=kind, attributes=sorted(definition))

    def definition(self, kind: str) -> FixtureDefinition:
        try:
            return self._definitions[kind]
        except KeyError:
            raise UnknownKind(f"Fixture kind {kind!r} is not registered") from None

    def build(self, kind: str, overrides: Optional[Mapping[str, Any]] = None) -> Record:
        definition = self.definition(kind)
        overrides = dict(overrides or {})
        self._validate_overrides(kind, definition, overrides)

        self._sequences[kind] += 1
        self._built += 1
        clock = self.clock if self.clock is not None else current_clock()
        context = GenerationContext(sequence=self._sequences[kind], now=clock.now(), rng=self.rng)

        attributes = {}
        for name in definition:
            if name in overrides:
                attributes[name] = overrides[name]
            else:
                attributes[name] = definition.spec(name).default(context)
        return Record(kind=kind, identity=generate_record_id(kind, self._built, self._seed), attributes=attributes)

    def build_many(
        self, kind: str, count: int, overrides: Optional[Mapping[str, Any]] = None
    ) -> Tuple[Record, ...]:
        return tuple(self.build(kind, overrides) for _ in range(count))

    def reset_sequences(self) -> None:
        self._sequences.clear()

    @staticmethod
    def _validate_overrides(kind: str, definition: FixtureDefinition, overrides: Mapping[str, Any]) -> None:
        for name, value in overrides.items():
            if name not in definition:
                raise InvalidOverride(f"{kind!r} has no attribute {name!r}")
            spec = definition.spec(name)
            if not spec.accepts(value):
                if spec.domain is not None:
                    allowed = spec.domain
                elif spec.aware:
                    allowed = f"timezone-aware {spec.value_type.__name__}"
                else:
                    allowed = spec.value_type.__name__
                raise InvalidOverride(f"{value!r} is not a valid {kind}.{name} (allowed: {allowed})")


_default_registry: Optional[FixtureRegistry] = None


def default_registry() -> FixtureRegistry:
    """Return the process-wide registry, creating it on first use."""

    global _default_registry
    if _default_registry is None:
        _default_registry = FixtureRegistry()
    return _default_registry


def register(kind: str, definition: FixtureDefinition) -> None:
    default_registry().register(kind, definition)


def build(kind: str, overrides: Optional[Mapping[str, Any]] = None) -> Record:
    return default_registry().build(kind, overrides)
