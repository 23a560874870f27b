"""Result values returned by every mutating settlement command.

Commands never raise for ordinary gameplay failures (missing land, not
enough wood, unknown ids). They return an :class:`Outcome` that is either a
success carrying a value or a failure carrying one :class:`ErrorKind` and a
human readable reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Closed set of reportable command failures."""

    UNKNOWN_ARCHETYPE = "UnknownArchetype"
    RANK_TOO_LOW = "RankTooLow"
    MISSING_PREREQUISITE = "MissingPrerequisite"
    UNKNOWN_REGION = "UnknownRegion"
    INCOMPATIBLE_TERRAIN = "IncompatibleTerrain"
    INSUFFICIENT_LAND = "InsufficientLand"
    INSUFFICIENT_RESOURCES = "InsufficientResources"
    UNKNOWN_BUILDING = "UnknownBuilding"
    NO_JOB_SLOTS = "NoJobSlots"
    AT_CAPACITY = "AtCapacity"
    UNKNOWN_WORKER = "UnknownWorker"
    WORKER_UNAVAILABLE = "WorkerUnavailable"
    NO_UPGRADE_PATH = "NoUpgradePath"
    NO_EXPLORERS = "NoExplorers"
    NO_UNEXPLORED_LAND = "NoUnexploredLand"


@dataclass(frozen=True)
class Outcome:
    ok: bool
    value: Any = None
    error: Optional[ErrorKind] = None
    reason: str = ""

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorKind, reason: str = "") -> "Outcome":
        return cls(ok=False, error=error, reason=reason or error.value)

    def __bool__(self) -> bool:
        return self.ok


__all__ = ["ErrorKind", "Outcome"]
