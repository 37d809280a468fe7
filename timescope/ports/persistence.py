from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from ..domain.models import CalendarRange, Record


class RecordStore(ABC):
    """Storage collaborator answering range queries over fixture records."""

    @abstractmethod
    def add(self, records: Iterable[Record]) -> None:
        raise NotImplementedError

    @abstractmethod
    def query_range(self, attribute: str, range_: CalendarRange) -> Sequence[Record]:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError
