"""
Optimizer configuration and defaults.

This module stores the tunable parameters of a layout optimization run:
- Genetic algorithm parameters (population, generations, operators)
- Termination (generation limit, early stopping patience, time budget)
- Placement strategy (packing algorithm, free rectangle choice, split rule,
  merge policy, kerf)
- Objective the fitness function minimizes
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, field, fields, replace
from enum import Enum

from ..packing.free_space import FreeRectChoice, MergePolicy, SplitRule
from ..packing.placement import PackingAlgorithm, PlacementStrategy
from .exceptions import ConfigurationError


class Objective(Enum):
    """Quantity the optimizer minimizes (after the unplaced piece count)."""
    WASTE = "waste"
    SHEET_COUNT = "sheet_count"
    COST = "cost"


# ============================================================================
# OPTIMIZATION PARAMETERS
# ============================================================================

OPTIMIZATION = {
    # Genetic Algorithm
    "ga": {
        "population_size": 50,
        "max_generations": 100,
        "elitism_count": 2,
        "tournament_size": 3,
        "mutation_probability": 0.05,
        "crossover_probability": 1.0,
        "inversion_probability": 0.05,
    },

    # Termination
    "termination": {
        "patience": 25,          # Generations without improvement
        "time_budget": None,     # Seconds, checked between generations
    },

    # Placement
    "placement": {
        "algorithm": PackingAlgorithm.GUILLOTINE,
        "rect_choice": FreeRectChoice.BEST_AREA_FIT,
        "split_rule": SplitRule.SHORTER_LEFTOVER_AXIS,
        "merge_policy": MergePolicy.AFTER_EACH_PLACEMENT,
        "blade_width": 0,
    },
}


@dataclass
class OptimizerConfig:
    """
    Configuration of one optimization run.

    Attributes:
        population_size: Individuals per generation
        max_generations: Generation limit
        elitism_count: Best individuals copied unchanged to the next generation
        tournament_size: Individuals sampled per tournament
        mutation_probability: Per-gene probability of a swap and of a rotation flip
        crossover_probability: Probability a child is bred by order crossover
        inversion_probability: Probability a child gets a slice of its order reversed
        patience: Stop after this many generations without improvement (None disables)
        time_budget: Wall-clock budget in seconds (None disables)
        random_seed: Seed for reproducible runs (None draws OS entropy)
        workers: Processes used to evaluate a generation (1 evaluates in-process)
        objective: What the fitness function minimizes
        strategy: Placement rules and blade width
        allow_mixed_stock_sizes: Allow one layout to use several stock sizes
        seed_sorted_individuals: Add largest-first orderings to the initial population
        validate_layouts: Check the returned layout and raise if it is unsound
    """
    population_size: int = OPTIMIZATION["ga"]["population_size"]
    max_generations: int = OPTIMIZATION["ga"]["max_generations"]
    elitism_count: int = OPTIMIZATION["ga"]["elitism_count"]
    tournament_size: int = OPTIMIZATION["ga"]["tournament_size"]
    mutation_probability: float = OPTIMIZATION["ga"]["mutation_probability"]
    crossover_probability: float = OPTIMIZATION["ga"]["crossover_probability"]
    inversion_probability: float = OPTIMIZATION["ga"]["inversion_probability"]
    patience: Optional[int] = OPTIMIZATION["termination"]["patience"]
    time_budget: Optional[float] = OPTIMIZATION["termination"]["time_budget"]
    random_seed: Optional[int] = None
    workers: int = 1
    objective: Objective = Objective.WASTE
    strategy: PlacementStrategy = field(default_factory=lambda: PlacementStrategy(
        **OPTIMIZATION["placement"]))
    allow_mixed_stock_sizes: bool = True
    seed_sorted_individuals: bool = True
    validate_layouts: bool = False

    def validate(self) -> "OptimizerConfig":
        """Raise ConfigurationError for structurally invalid values."""
        def fail(name: str, message: str):
            raise ConfigurationError(f"Invalid {name}: {message}",
                                     {"field": name, "value": getattr(self, name, None)})

        if self.population_size < 1:
            fail("population_size", "must be at least 1")
        if self.max_generations < 0:
            fail("max_generations", "must not be negative")
        if self.elitism_count < 0 or self.elitism_count > self.population_size:
            fail("elitism_count", "must be between 0 and population_size")
        if self.tournament_size < 1:
            fail("tournament_size", "must be at least 1")
        for name in ("mutation_probability", "crossover_probability", "inversion_probability"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                fail(name, "must be within [0, 1]")
        if self.patience is not None and self.patience < 1:
            fail("patience", "must be at least 1")
        if self.time_budget is not None and self.time_budget <= 0:
            fail("time_budget", "must be positive")
        if self.workers < 1:
            fail("workers", "must be at least 1")
        if self.strategy.blade_width < 0:
            raise ConfigurationError("Invalid blade_width: must not be negative",
                                     {"field": "blade_width",
                                      "value": self.strategy.blade_width})
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OptimizerConfig":
        """
        Build a config from plain values, e.g. a decoded request body.

        Placement keys (algorithm, rect_choice, split_rule, merge_policy,
        blade_width) may be given at the top level; enum members may be given by value or name.
        Unknown keys raise ConfigurationError.
        """
        data = dict(data or {})
        strategy_data = dict(data.pop("strategy", None) or {})
        for key in OPTIMIZATION["placement"]:
            if key in data:
                strategy_data[key] = data.pop(key)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}",
                                     {"keys": unknown})

        placement = dict(OPTIMIZATION["placement"])
        try:
            if "objective" in data:
                data["objective"] = _parse_enum(Objective, data["objective"])
            for key, value in strategy_data.items():
                if key not in placement:
                    raise ValueError(f"unknown placement key {key!r}")
                default = placement[key]
                placement[key] = _parse_enum(type(default), value) if isinstance(default, Enum) else value
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}", {"input": strategy_data})

        strategy = PlacementStrategy(**placement)

        return cls(strategy=strategy, **data)

    def with_overrides(self, **changes) -> "OptimizerConfig":
        return replace(self, **changes)


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for member in enum_cls:
        if text == member.value or text.upper() == member.name:
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")
