"""
Logical Clock for Deterministic Reports
=======================================

Injectable clock: the only source of time the pipeline reads.

GUARANTEES:
- Same evidence + same clock sequence = byte-identical reports
- Never reads system time outside LIVE mode
- Every reading is recorded, so a live run can be replayed from its tick log
- No file access: the tick log is handed to and taken from the caller as data
"""

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


TICK_LOG_VERSION = '1.0'


class ClockExhausted(Exception):
    """Raised when a replay clock is read more often than it was recorded."""


class ClockMode(Enum):
    LIVE = "live"
    REPLAY = "replay"
    PINNED = "pinned"


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


class LogicalClock:
    """
    Injectable clock for deterministic execution.

    MODES:
    ======
    1. LIVE: reads system time and records each reading
    2. REPLAY: hands out a recorded tick sequence, one reading per tick
    3. PINNED: reports one fixed instant on every read

    Use the ``live``, ``pinned`` and ``from_tick_log`` constructors rather than
    instantiating directly.
    """

    def __init__(
        self,
        mode: ClockMode = ClockMode.LIVE,
        ticks: Iterable[datetime] = (),
        instant: Optional[datetime] = None
    ):
        if mode == ClockMode.PINNED and instant is None:
            raise ValueError("A pinned clock needs an instant")
        self._mode = mode
        self._instant = _as_utc(instant) if instant is not None else None
        self._recorded: List[datetime] = [_as_utc(t) for t in ticks]
        self._reads = 0

    def now(self) -> datetime:
        if self._mode == ClockMode.REPLAY:
            if self._reads >= len(self._recorded):
                raise ClockExhausted(
                    f"Replay clock exhausted after {self._reads} reads; "
                    f"the recorded run had {len(self._recorded)}"
                )
            tick = self._recorded[self._reads]
        elif self._mode == ClockMode.PINNED:
            tick = self._instant
            self._recorded.append(tick)
        else:
            tick = datetime.now(timezone.utc)
            self._recorded.append(tick)

        self._reads += 1
        return tick

    @property
    def mode(self) -> ClockMode:
        return self._mode

    def tick_count(self) -> int:
        """Readings taken so far."""
        return self._reads

    def is_live(self) -> bool:
        return self._mode == ClockMode.LIVE

    @classmethod
    def live(cls) -> LogicalClock:
        return cls(ClockMode.LIVE)

    @classmethod
    def pinned(cls, instant: datetime) -> LogicalClock:
        """Clock that always reports ``instant`` (naive values are taken as UTC)."""
        return cls(ClockMode.PINNED, instant=instant)

    @classmethod
    def from_tick_log(cls, tick_log: Dict[str, Any]) -> LogicalClock:
        """
        Replay clock over a tick log produced by ``tick_log``.

        The log is plain JSON-ready data; reading and writing it is left to
        the caller.
        """
        if tick_log.get('version') != TICK_LOG_VERSION:
            raise ValueError(f"Unsupported tick log version: {tick_log.get('version')!r}")

        return cls(
            ClockMode.REPLAY,
            ticks=[datetime.fromisoformat(t) for t in tick_log['ticks']]
        )

    def tick_log(self) -> Dict[str, Any]:
        """Every reading taken so far, as JSON-ready data."""
        ticks = self._recorded[:self._reads]
        return {
            'version': TICK_LOG_VERSION,
            'recorded_mode': self._mode.value,
            'tick_count': len(ticks),
            'ticks': [t.isoformat() for t in ticks],
        }

    def __repr__(self) -> str:
        return f"LogicalClock({self._mode.name}, reads={self._reads})"
