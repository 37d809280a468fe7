"""Range scopes over timestamped records.

``filter_records`` is the reference behaviour a storage-backed "created in
the last month" query must agree with: for the same records, both must
select the same set.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Tuple

from .calendar_math import month_range
from .models import CalendarRange, Record


class UnknownAttribute(KeyError):
    """Raised when a record has no value for the scoped attribute."""


class EquivalenceViolation(AssertionError):
    """Raised when two evaluations of the same scope select different records."""


def filter_records(records: Iterable[Record], attribute: str, range_: CalendarRange) -> Tuple[Record, ...]:
    selected = []
    for record in records:
        if attribute not in record.attributes:
            raise UnknownAttribute(f"{record.kind} record {record.identity} has no attribute {attribute!r}")
        if range_.contains(record[attribute]):
            selected.append(record)
    return tuple(selected)


def assert_equivalent(expected: Iterable[Record], actual: Iterable[Record]) -> None:
    """Compare two selections as sets of record identities."""

    expected_ids = {record.identity for record in expected}
    actual_ids = {record.identity for record in actual}
    if expected_ids == actual_ids:
        return
    missing = sorted(str(identity) for identity in expected_ids - actual_ids)
    unexpected = sorted(str(identity) for identity in actual_ids - expected_ids)
    raise EquivalenceViolation(f"Scope results differ: missing={missing} unexpected={unexpected}")


@dataclass(frozen=True)
class RangeScope:
    """Records whose ``attribute`` falls in the calendar month ``months_ago`` months back."""

    attribute: str
    months_ago: int = 1

    def bounds(self, now: datetime) -> CalendarRange:
        return month_range(self.months_ago, now)

    def apply(self, records: Iterable[Record], now: datetime) -> Tuple[Record, ...]:
        return filter_records(records, self.attribute, self.bounds(now))
