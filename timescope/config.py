import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import tomllib

from .adapters.persistence.memory import InMemoryRecordStore
from .adapters.persistence.sqlite import SqliteRecordStore
from .application.fixtures import FixtureRegistry
from .application.harness import HarnessRunner
from .infrastructure.clock import FreezableClock, SystemClock
from .ports.persistence import RecordStore


@dataclass
class ClockSettings:
    timezone: str


@dataclass
class FixtureSettings:
    seed: Optional[int]
    timestamp_attribute: str


@dataclass
class StoreSettings:
    dsn: str


@dataclass
class LoggingSettings:
    level: str


@dataclass
class Settings:
    clock: ClockSettings
    fixtures: FixtureSettings
    store: StoreSettings
    logging: LoggingSettings


def load_settings(settings_path: Path = Path("config/settings.toml")) -> Settings:
    """Load configuration from environment with optional config file defaults."""

    file_settings = _load_file_settings(settings_path)
    seed = _config_value("TIMESCOPE_FIXTURE_SEED", file_settings, "fixtures", "seed", "")

    return Settings(
        clock=ClockSettings(
            timezone=_config_value("TIMESCOPE_TIMEZONE", file_settings, "clock", "timezone", "UTC"),
        ),
        fixtures=FixtureSettings(
            seed=int(seed) if seed else None,
            timestamp_attribute=_config_value(
                "TIMESCOPE_TIMESTAMP_ATTRIBUTE", file_settings, "fixtures", "timestamp_attribute", "created_at"
            ),
        ),
        store=StoreSettings(
            dsn=_config_value("TIMESCOPE_STORE_DSN", file_settings, "store", "dsn", ":memory:"),
        ),
        logging=LoggingSettings(
            level=_config_value("TIMESCOPE_LOG_LEVEL", file_settings, "logging", "level", "INFO"),
        ),
    )


def _load_file_settings(settings_path: Path) -> Dict[str, Any]:
    if not settings_path.exists():
        return {}

    with settings_path.open("rb") as settings_file:
        return tomllib.load(settings_file)


def _config_value(
    env_key: str, settings: Dict[str, Any], section: str, key: str, default: str
) -> str:
    if env_key in os.environ:
        return os.environ[env_key]

    section_data = settings.get(section, {})
    return str(section_data.get(key, default))


def build_store(settings: Settings) -> RecordStore:
    if settings.store.dsn == "memory":
        return InMemoryRecordStore()
    return SqliteRecordStore(dsn=settings.store.dsn, tz=ZoneInfo(settings.clock.timezone))


def build_components(settings: Optional[Settings] = None) -> dict:
    """Construct the clock, fixture registry, store and runner for one execution context."""

    settings = settings or load_settings()
    clock = FreezableClock(SystemClock(ZoneInfo(settings.clock.timezone)))
    registry = FixtureRegistry(clock=clock, seed=settings.fixtures.seed)
    store = build_store(settings)
    runner = HarnessRunner(
        clock=clock,
        registry=registry,
        store=store,
        attribute=settings.fixtures.timestamp_attribute,
    )
    return {
        "settings": settings,
        "clock": clock,
        "registry": registry,
        "store": store,
        "runner": runner,
    }
