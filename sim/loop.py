"""Fixed-period tick driver.

The scheduler only decides *when* a tick happens; what a tick does is the
``tick_fn`` it is given (normally :meth:`engine.SettlementEngine.tick`).
Timer ticks are ignored while stopped or paused, a manual :meth:`tick`
always runs.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Speed:
    period: float  # wall-clock seconds between timer ticks
    days_per_tick: int


SPEEDS: Dict[str, Speed] = {
    "slow": Speed(period=10.0, days_per_tick=1),
    "normal": Speed(period=5.0, days_per_tick=1),
    "fast": Speed(period=0.1, days_per_tick=1),
}


class Scheduler:
    def __init__(self, tick_fn: Callable[[int], Any], speed: str = "normal") -> None:
        self.tick_fn = tick_fn
        self.running = False
        self.paused = False
        self.speed = "normal"
        self.set_speed(speed)
        self.ticks = 0

    @property
    def settings(self) -> Speed:
        return SPEEDS[self.speed]

    def set_speed(self, name: str) -> None:
        if name not in SPEEDS:
            raise ValueError(f"unknown speed {name!r}; choose from {sorted(SPEEDS)}")
        self.speed = name
        logger.debug("speed set to %s", name)

    def start(self) -> None:
        self.running = True
        self.paused = False

    def stop(self) -> None:
        self.running = False

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    def tick(self) -> Any:
        """Run one tick regardless of the running/paused flags."""
        self.ticks += 1
        return self.tick_fn(self.settings.days_per_tick)

    def on_timer(self) -> bool:
        """Handle one timer firing; return whether a tick ran."""
        if not self.running or self.paused:
            return False
        self.tick()
        return True

    def run(self, max_ticks: int, sleep: Callable[[float], None] = time.sleep) -> int:
        """Fire the timer ``max_ticks`` times; return how many ticks ran.

        The loop ends early when :meth:`stop` is called from a subscriber.
        """
        self.start()
        ran = 0
        for _ in range(max_ticks):
            sleep(self.settings.period)
            if not self.running:
                break
            if self.on_timer():
                ran += 1
        self.stop()
        return ran


__all__ = ["Scheduler", "Speed", "SPEEDS"]
