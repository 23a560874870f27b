"""Settlement calendar with month, season and year rollovers.

Months are a fixed 30 days and seasons a fixed 90 days, so the calendar
carries independent day-of-month and day-of-season counters rather than
deriving one from the other. :meth:`Calendar.advance` reports every boundary
crossed, so a single large step never loses a rollover.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DAYS_PER_MONTH = 30
DAYS_PER_SEASON = 90

MONTH_NAMES: Tuple[str, ...] = (
    "Þorri",
    "Góa",
    "Einmánuður",
    "Harpa",
    "Skerpla",
    "Sólmánuður",
    "Heyannir",
    "Tvímánuður",
    "Haustmánuður",
    "Gormánuður",
    "Ýlir",
    "Mörsugur",
)


class Season(Enum):
    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"
    WINTER = "Winter"

    def next(self) -> "Season":
        order = list(Season)
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class SeasonChange:
    previous: Season
    current: Season


@dataclass
class DateAdvance:
    """Boundaries crossed by one call to :meth:`Calendar.advance`."""

    days: int
    months: List[int] = field(default_factory=list)
    seasons: List[SeasonChange] = field(default_factory=list)
    years: List[int] = field(default_factory=list)


@dataclass
class Calendar:
    day: int = 1
    day_of_season: int = 1
    day_of_month: int = 1
    month: int = 0
    season: Season = Season.SPRING
    year: int = 1

    def __post_init__(self) -> None:
        if self.day < 1 or self.year < 1:
            raise ValueError("day and year must be >= 1")
        if not 1 <= self.day_of_month <= DAYS_PER_MONTH:
            raise ValueError(f"day_of_month must be within [1, {DAYS_PER_MONTH}]")
        if not 1 <= self.day_of_season <= DAYS_PER_SEASON:
            raise ValueError(f"day_of_season must be within [1, {DAYS_PER_SEASON}]")
        if not 0 <= self.month < len(MONTH_NAMES):
            raise ValueError(f"month must be within [0, {len(MONTH_NAMES) - 1}]")

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month]

    def advance(self, days: int) -> DateAdvance:
        """Advance by ``days`` and report every rollover, in order.

        Month rollovers are resolved first, then season changes; a season
        change from Winter back to Spring also completes a year.
        """
        if days < 0:
            raise ValueError("days must be >= 0")

        out = DateAdvance(days=days)
        self.day += days
        self.day_of_month += days
        self.day_of_season += days

        while self.day_of_month > DAYS_PER_MONTH:
            self.day_of_month -= DAYS_PER_MONTH
            self.month = (self.month + 1) % len(MONTH_NAMES)
            out.months.append(self.month)

        while self.day_of_season > DAYS_PER_SEASON:
            self.day_of_season -= DAYS_PER_SEASON
            previous = self.season
            self.season = previous.next()
            out.seasons.append(SeasonChange(previous, self.season))
            if self.season is Season.SPRING:
                self.year += 1
                out.years.append(self.year)

        return out

    def describe(self) -> str:
        return f"Year {self.year}, Day {self.day} - {self.month_name} ({self.season.value})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "day_of_season": self.day_of_season,
            "day_of_month": self.day_of_month,
            "month": self.month,
            "season": self.season.value,
            "year": self.year,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Calendar":
        """Rebuild a calendar, replacing bad fields with their starting value."""
        from sim.safe_parse import to_int

        def field_in(name: str, lo: int, hi: float, default: int) -> int:
            value = to_int(data.get(name), default=default)
            if not lo <= value <= hi:
                logger.warning("calendar %s %r out of range, using %d", name, value, default)
                return default
            return value

        try:
            season = Season(data.get("season", Season.SPRING.value))
        except ValueError:
            logger.warning("unknown season %r, using Spring", data.get("season"))
            season = Season.SPRING
        return cls(
            day=field_in("day", 1, float("inf"), 1),
            day_of_season=field_in("day_of_season", 1, DAYS_PER_SEASON, 1),
            day_of_month=field_in("day_of_month", 1, DAYS_PER_MONTH, 1),
            month=field_in("month", 0, len(MONTH_NAMES) - 1, 0),
            season=season,
            year=field_in("year", 1, float("inf"), 1),
        )


__all__ = [
    "Calendar",
    "DateAdvance",
    "Season",
    "SeasonChange",
    "DAYS_PER_MONTH",
    "DAYS_PER_SEASON",
    "MONTH_NAMES",
]
