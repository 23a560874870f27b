from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class GameModifiers:
    """Tweakable simulation parameters.

    Central store for values that affect core economy mechanics. Engines
    take an instance at construction time so tests and scenarios can run
    with their own balance without touching the shared default.
    """

    # Building wear
    condition_decay_per_day: float = 0.1
    max_condition: float = 100.0

    # Worker skill -> output modifier: floor + (avg_skill / 10) * span
    skill_floor: float = 0.8
    skill_span: float = 1.2
    default_skill: float = 1.0

    # Repairs cost this fraction of the build cost at full damage
    repair_cost_fraction: float = 0.25
    min_repair_cost: int = 1

    # Upkeep of the population
    food_per_person_per_day: float = 1.0

    # Fame rewards
    seasonal_fame_bonus: float = 10.0
    yearly_fame_bonus: float = 50.0
    exploration_fame: float = 10.0
    resource_thresholds: Tuple[float, ...] = (100, 250, 500, 1000, 2000, 5000)
    resource_fame_rewards: Tuple[float, ...] = (5, 10, 25, 50, 100, 200)
    population_thresholds: Tuple[int, ...] = (10, 25, 50, 100, 200, 500)
    population_fame_rewards: Tuple[float, ...] = (10, 25, 50, 100, 250, 500)
    construction_fame: Dict[str, float] = field(default_factory=lambda: {
        "house": 10.0,
        "farm": 15.0,
        "smithy": 25.0,
        "longhouse": 50.0,
    })

    # Exploration
    explore_min_acres: int = 10
    explore_max_acres: int = 20
    starting_unexplored_acres: int = 100

    def __post_init__(self) -> None:
        if len(self.resource_thresholds) != len(self.resource_fame_rewards):
            raise ValueError("resource thresholds and rewards differ in length")
        if len(self.population_thresholds) != len(self.population_fame_rewards):
            raise ValueError("population thresholds and rewards differ in length")
        if self.explore_min_acres > self.explore_max_acres:
            raise ValueError("explore_min_acres must be <= explore_max_acres")


# Default modifiers instance; read-only, engines may be given their own
MODIFIERS = GameModifiers()
