from datetime import datetime, timedelta
from typing import Tuple
from zoneinfo import ZoneInfo

from timescope import config
from timescope.application import generators
from timescope.application.fixtures import FixtureRegistry
from timescope.application.harness import HarnessRunner
from timescope.domain.calendar_math import month_range
from timescope.domain.models import FixtureDefinition, Record, as_instant
from timescope.infrastructure.clock import FreezableClock
from timescope.infrastructure.logging import configure_logging, get_logger

logger = get_logger(__name__)

ARTICLE = FixtureDefinition(
    {
        "title": generators.sequence("Article {n}"),
        "published": generators.boolean(),
        "visibility": generators.one_of(("public", "members", "private")),
        "created_at": generators.random_instant(within=timedelta(days=365)),
    }
)


def run() -> None:
    settings = config.load_settings()
    configure_logging(settings.logging.level)
    components = config.build_components(settings)
    registry: FixtureRegistry = components["registry"]
    runner: HarnessRunner = components["runner"]
    tz = ZoneInfo(settings.clock.timezone)

    registry.register("article", ARTICLE)

    def setup(clock: FreezableClock) -> Tuple[Record, ...]:
        return tuple(
            registry.build("article", {"created_at": as_instant(datetime(*ymd), tz)})
            for ymd in [(2017, 4, 1), (2017, 4, 30), (2017, 5, 1), (2017, 3, 31)]
        )

    result = runner.run_scenario(
        setup,
        months_ago=1,
        assertion=lambda matched: [r["created_at"].day for r in matched] == [1, 30],
        at=as_instant(datetime(2017, 5, 6), tz),
    )
    logger.info("last_month_articles", matched=[r["title"] for r in result.matched])

    february = month_range(1, datetime(2017, 3, 1, tzinfo=tz))
    logger.info("previous_month_bounds", start=february.start.isoformat(), end=february.end.isoformat())


if __name__ == "__main__":
    run()
