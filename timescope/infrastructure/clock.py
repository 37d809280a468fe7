from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterator, List, Optional, Protocol

from .logging import get_logger

logger = get_logger(__name__)


class ClockStateError(RuntimeError):
    """Raised when a clock is unfrozen or advanced without an active freeze."""


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Production clock reading wall time in a fixed zone."""

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """Deterministic clock for tests."""

    def __init__(self, value: datetime) -> None:
        self.value = value

    def now(self) -> datetime:
        return self.value


class FreezableClock:
    """Clock that can be pinned to an instant for the length of a scenario.

    Freezes stack: ``unfreeze`` restores whatever was active before the
    matching ``freeze``, which is the underlying source once the stack is
    empty. Unfreezing an unfrozen clock is a teardown bug and raises
    ``ClockStateError`` instead of passing silently.
    """

    def __init__(self, source: Optional[Clock] = None) -> None:
        self.source: Clock = source if source is not None else SystemClock()
        self._frozen: List[datetime] = []

    def now(self) -> datetime:
        if self._frozen:
            return self._frozen[-1]
        return self.source.now()

    @property
    def is_frozen(self) -> bool:
        return bool(self._frozen)

    @property
    def depth(self) -> int:
        return len(self._frozen)

    def freeze(self, instant: datetime) -> None:
        self._frozen.append(instant)
        logger.debug("clock_frozen", instant=instant.isoformat(), depth=len(self._frozen))

    def unfreeze(self) -> None:
        if not self._frozen:
            raise ClockStateError("unfreeze called with no active freeze")
        released = self._frozen.pop()
        logger.debug("clock_unfrozen", released=released.isoformat(), depth=len(self._frozen))

    def unwind(self, depth: int) -> None:
        """Pop freezes until only ``depth`` remain."""

        if depth > len(self._frozen):
            raise ClockStateError(f"cannot unwind to depth {depth}, only {len(self._frozen)} active")
        while len(self._frozen) > depth:
            self.unfreeze()

    def advance(self, delta: timedelta) -> datetime:
        """Move the innermost frozen instant by ``delta`` and return the new reading."""

        if not self._frozen:
            raise ClockStateError("advance requires a frozen clock")
        self._frozen[-1] = self._frozen[-1] + delta
        return self._frozen[-1]

    @contextmanager
    def frozen(self, instant: datetime) -> Iterator["FreezableClock"]:
        self.freeze(instant)
        try:
            yield self
        finally:
            self.unfreeze()


_default_clock = FreezableClock()
_current_clock: ContextVar[Optional[FreezableClock]] = ContextVar("timescope_clock", default=None)


def current_clock() -> FreezableClock:
    """Return the clock bound to this execution context, or the process default."""

    clock = _current_clock.get()
    return clock if clock is not None else _default_clock


@contextmanager
def use_clock(clock: FreezableClock) -> Iterator[FreezableClock]:
    """Bind ``clock`` to the current execution context for the duration of the block."""

    token = _current_clock.set(clock)
    try:
        yield clock
    finally:
        _current_clock.reset(token)
