"""Default-value generators for fixture attributes.

Each helper returns an ``AttributeSpec``. Identifying attributes get a
sequence so values never collide within a run. Mode-like attributes
(booleans, enums) are drawn uniformly from their whole domain: a test that
silently relies on one particular value then fails some of the time
instead of passing by accident.

Generators are frozen dataclasses, so two specs built from the same
arguments compare equal and a definition can be registered again.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Tuple

from ..domain.models import AttributeSpec, GenerationContext


@dataclass(frozen=True)
class _Sequence:
    template: str

    def __call__(self, context: GenerationContext) -> str:
        return self.template.format(n=context.sequence)


@dataclass(frozen=True)
class _OneOf:
    values: Tuple[Any, ...]

    def __call__(self, context: GenerationContext) -> Any:
        return context.rng.choice(self.values)


@dataclass(frozen=True)
class _RelativeToNow:
    offset: timedelta

    def __call__(self, context: GenerationContext) -> datetime:
        return context.now + self.offset


@dataclass(frozen=True)
class _RandomInstant:
    span_us: int
    end_offset: timedelta

    def __call__(self, context: GenerationContext) -> datetime:
        return context.now - self.end_offset - timedelta(microseconds=context.rng.randint(0, self.span_us))


def sequence(template: str = "{n}") -> AttributeSpec:
    """Values like ``template.format(n=...)`` using the per-kind build counter."""

    return AttributeSpec(default=_Sequence(template), value_type=str)


def one_of(domain: Iterable[Any]) -> AttributeSpec:
    values = tuple(domain)
    if not values:
        raise ValueError("one_of needs at least one value")
    return AttributeSpec(default=_OneOf(values), domain=values)


def boolean() -> AttributeSpec:
    return replace(one_of((True, False)), value_type=bool)


def relative_to_now(offset: timedelta = timedelta(0)) -> AttributeSpec:
    """The clock reading at build time shifted by ``offset``."""

    return AttributeSpec(default=_RelativeToNow(offset), value_type=datetime, aware=True)


def random_instant(within: timedelta, before: Optional[timedelta] = None) -> AttributeSpec:
    """A uniformly random instant in the ``within`` window ending ``before`` ago (default: now)."""

    end_offset = before if before is not None else timedelta(0)
    span_us = int(within / timedelta(microseconds=1))
    return AttributeSpec(default=_RandomInstant(span_us, end_offset), value_type=datetime, aware=True)
