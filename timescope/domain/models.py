from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple
from uuid import UUID


class InvalidRange(ValueError):
    """Raised when a range would end before it starts."""


def as_instant(value: datetime, tz: tzinfo) -> datetime:
    """Return ``value`` as a zone-qualified instant, reading naive values in ``tz``."""

    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


@dataclass(frozen=True)
class CalendarRange:
    """Inclusive ``[start, end]`` interval of instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidRange(f"Range start {self.start.isoformat()} is after end {self.end.isoformat()}")

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class GenerationContext:
    """Inputs available to a default-value generator for a single build."""

    sequence: int
    now: datetime
    rng: Any


Generator = Callable[[GenerationContext], Any]


@dataclass(frozen=True)
class AttributeSpec:
    """How to produce one attribute of a fixture record.

    ``domain`` lists every allowed value for enumerated attributes and
    ``value_type`` restricts overrides to instances of a type. Either may be
    left unset. ``aware`` additionally requires datetime overrides to carry
    a tzinfo.
    """

    default: Generator
    domain: Optional[Tuple[Any, ...]] = None
    value_type: Optional[type] = None
    aware: bool = False

    def accepts(self, value: Any) -> bool:
        if self.domain is not None and value not in self.domain:
            return False
        if self.value_type is not None and not isinstance(value, self.value_type):
            return False
        if self.aware and isinstance(value, datetime) and value.tzinfo is None:
            return False
        return True


@dataclass(frozen=True)
class FixtureDefinition:
    """Read-only mapping of attribute name to spec for one record kind."""

    attributes: Mapping[str, AttributeSpec]

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixtureDefinition):
            return NotImplemented
        return dict(self.attributes) == dict(other.attributes)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.attributes)))

    def __iter__(self) -> Iterator[str]:
        return iter(self.attributes)

    def __contains__(self, name: object) -> bool:
        return name in self.attributes

    def spec(self, name: str) -> AttributeSpec:
        return self.attributes[name]


@dataclass(frozen=True)
class Record:
    """A generated fixture: its kind, an opaque identity and its attribute values."""

    kind: str
    identity: UUID
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __getitem__(self, name: str) -> Any:
        return self.attributes[name]

    def __hash__(self) -> int:
        return hash((self.kind, self.identity))

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.attributes)
