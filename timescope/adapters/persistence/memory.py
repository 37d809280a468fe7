from typing import Iterable, List, Sequence

from ...domain.models import CalendarRange, Record
from ...domain.scope import filter_records
from ...ports.persistence import RecordStore


class InMemoryRecordStore(RecordStore):
    """List-backed store; range queries go straight through ``filter_records``."""

    def __init__(self) -> None:
        self.records: List[Record] = []

    def add(self, records: Iterable[Record]) -> None:
        self.records.extend(records)

    def query_range(self, attribute: str, range_: CalendarRange) -> Sequence[Record]:
        return filter_records(self.records, attribute, range_)

    def clear(self) -> None:
        self.records.clear()
