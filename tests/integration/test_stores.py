from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

import pytest

from timescope.adapters.persistence.memory import InMemoryRecordStore
from timescope.adapters.persistence.sqlite import (
    SqliteRecordStore,
    UnsupportedAttributeValue,
    decode_instant,
    encode_instant,
)
from timescope.application import generators
from timescope.application.fixtures import FixtureRegistry
from timescope.application.harness import HarnessRunner
from timescope.domain.calendar_math import month_range
from timescope.domain.models import FixtureDefinition, Record
from timescope.domain.scope import assert_equivalent, filter_records
from timescope.infrastructure.clock import FixedClock, FreezableClock

NOW = datetime(2017, 5, 6, tzinfo=timezone.utc)

ORDER = FixtureDefinition(
    {
        "reference": generators.sequence("ORD-{n:05d}"),
        "express": generators.boolean(),
        "channel": generators.one_of(("web", "phone", "store")),
        "placed_at": generators.random_instant(within=timedelta(days=450)),
    }
)


@pytest.fixture
def registry() -> FixtureRegistry:
    registry = FixtureRegistry(clock=FixedClock(NOW))
    registry.register("order", ORDER)
    return registry


@pytest.mark.integration
@pytest.mark.parametrize("n", [0, 1, 2, 5, 12])
def test_sqlite_range_query_matches_in_memory_filter(registry, n):
    records = registry.build_many("order", 300)
    store = SqliteRecordStore()
    store.add(records)
    range_ = month_range(n, NOW)

    expected = filter_records(records, "placed_at", range_)
    actual = store.query_range("placed_at", range_)

    assert_equivalent(expected, actual)
    assert [r.identity for r in actual] == [r.identity for r in expected]
    store.close()


@pytest.mark.integration
def test_sqlite_round_trips_attributes(registry):
    store = SqliteRecordStore()
    order = registry.build("order", {"placed_at": datetime(2017, 4, 30, 23, 59, 59, 999999, tzinfo=timezone.utc)})
    store.add([order])

    (loaded,) = store.query_range("placed_at", month_range(1, NOW))
    assert loaded == order
    store.clear()
    assert store.query_range("placed_at", month_range(1, NOW)) == ()


@pytest.mark.integration
def test_sqlite_compares_instants_across_zones():
    tz = ZoneInfo("America/New_York")
    registry = FixtureRegistry(clock=FixedClock(datetime(2017, 5, 6, tzinfo=tz)))
    registry.register("order", ORDER)
    late_april = registry.build("order", {"placed_at": datetime(2017, 4, 30, 23, 30, tzinfo=tz)})
    early_may = registry.build("order", {"placed_at": datetime(2017, 5, 1, 0, 30, tzinfo=tz)})
    store = SqliteRecordStore(tz=tz)
    store.add([late_april, early_may])

    range_ = month_range(1, datetime(2017, 5, 6, tzinfo=tz))
    assert [r.identity for r in store.query_range("placed_at", range_)] == [late_april.identity]


def test_instant_encoding_is_fixed_width_utc():
    tz = ZoneInfo("Europe/Berlin")
    text = encode_instant(datetime(2017, 3, 1, 1, 0, tzinfo=tz))
    assert text == "2017-03-01T00:00:00.000000"
    assert decode_instant(text, tz) == datetime(2017, 3, 1, 1, 0, tzinfo=tz)

    with pytest.raises(ValueError):
        encode_instant(datetime(2017, 3, 1))


@pytest.mark.integration
@pytest.mark.parametrize("store_factory", [InMemoryRecordStore, SqliteRecordStore])
def test_harness_checks_store_equivalence(registry, store_factory):
    clock = FreezableClock(FixedClock(NOW))
    runner = HarnessRunner(clock, registry, store=store_factory(), attribute="placed_at")

    result = runner.run_scenario(
        lambda _: registry.build_many("order", 100),
        months_ago=3,
        assertion=lambda matched: all(r["placed_at"].month == 2 for r in matched),
        at=NOW,
    )
    assert len(result.records) == 100


@pytest.mark.integration
def test_sqlite_round_trips_tagged_types():
    payload = Record(
        kind="invoice",
        identity=UUID(int=7),
        attributes={
            "issued_at": NOW,
            "customer": "ACME",
            "extra": None,
            "owner": UUID("12345678-1234-5678-1234-567812345678"),
            "due": date(2017, 5, 31),
            "amount": Decimal("10.05"),
            "tags": ("paid", "eu"),
        },
    )
    store = SqliteRecordStore()
    store.add([payload])

    (loaded,) = store.query_range("issued_at", month_range(0, NOW))
    assert loaded == payload
    assert isinstance(loaded["tags"], tuple)
    assert isinstance(loaded["amount"], Decimal)


@pytest.mark.integration
def test_sqlite_rejects_unsupported_values_and_rolls_back(registry):
    store = SqliteRecordStore()
    good = registry.build("order", {"placed_at": NOW})
    bad = Record(kind="order", identity=UUID(int=1), attributes={"placed_at": NOW, "blob": object()})

    with pytest.raises(UnsupportedAttributeValue):
        store.add([good, bad])
    assert store.query_range("placed_at", month_range(0, NOW)) == ()
