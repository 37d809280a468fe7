from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from ..domain.calendar_math import month_range
from ..domain.models import CalendarRange, Record
from ..domain.scope import assert_equivalent, filter_records
from ..infrastructure.clock import FreezableClock
from ..infrastructure.logging import get_logger
from ..ports.persistence import RecordStore
from .fixtures import FixtureRegistry

logger = get_logger(__name__)

Setup = Callable[[FreezableClock], Sequence[Record]]
Assertion = Callable[[Tuple[Record, ...]], Optional[bool]]


class ScenarioFailed(AssertionError):
    """Raised when a scenario assertion returns False."""


@dataclass(frozen=True)
class ScenarioResult:
    now: datetime
    range: CalendarRange
    records: Tuple[Record, ...]
    matched: Tuple[Record, ...]


class HarnessRunner:
    """Runs one month-scope scenario against a frozen clock.

    The clock is unwound to its depth before the scenario and the store
    cleared on every exit path, including a failing assertion or a setup
    that leaves its own freeze open, so no frozen instant or stale record
    leaks into the next scenario.
    """

    def __init__(
        self,
        clock: FreezableClock,
        registry: FixtureRegistry,
        store: Optional[RecordStore] = None,
        attribute: str = "created_at",
    ) -> None:
        self.clock = clock
        self.registry = registry
        self.store = store
        self.attribute = attribute

    def run_scenario(
        self,
        setup: Setup,
        months_ago: int,
        assertion: Assertion,
        at: Optional[datetime] = None,
        attribute: Optional[str] = None,
    ) -> ScenarioResult:
        attribute = attribute or self.attribute
        instant = at if at is not None else self.clock.now()
        logger.info(
            "scenario_started",
            at=instant.isoformat(),
            months_ago=months_ago,
            attribute=attribute,
            seed=self.registry.seed,
        )

        depth = self.clock.depth
        self.clock.freeze(instant)
        try:
            records = tuple(setup(self.clock))
            range_ = month_range(months_ago, self.clock.now())
            matched = filter_records(records, attribute, range_)
            if self.store is not None:
                self.store.add(records)
                assert_equivalent(matched, self.store.query_range(attribute, range_))
            if assertion(matched) is False:
                raise ScenarioFailed(
                    f"Assertion rejected {len(matched)} records in "
                    f"{range_.start.isoformat()}..{range_.end.isoformat()} (seed={self.registry.seed})"
                )
            logger.info("scenario_passed", matched=len(matched), total=len(records))
            return ScenarioResult(now=self.clock.now(), range=range_, records=records, matched=matched)
        except Exception as exc:
            logger.error("scenario_failed", error=str(exc), seed=self.registry.seed)
            raise
        finally:
            if self.store is not None:
                self.store.clear()
            if self.clock.depth != depth + 1:
                logger.warning("scenario_clock_depth_mismatch", expected=depth + 1, actual=self.clock.depth)
            self.clock.unwind(depth)
