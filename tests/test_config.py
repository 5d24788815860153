"""Tests for optimizer configuration and error types."""

import json

import pytest

from layout_optimizer.packing.free_space import FreeRectChoice, MergePolicy, SplitRule
from layout_optimizer.packing.placement import PackingAlgorithm, PlacementStrategy
from layout_optimizer.utils.config import OPTIMIZATION, Objective, OptimizerConfig
from layout_optimizer.utils.exceptions import ConfigurationError, LayoutValidationError


# =============================================================================
# Defaults
# =============================================================================


class TestDefaults:
    """Tests for default values."""

    def test_ga_defaults(self) -> None:
        config = OptimizerConfig()
        assert config.population_size == 50
        assert config.max_generations == 100
        assert config.elitism_count == 2
        assert config.tournament_size == 3
        assert config.mutation_probability == 0.05
        assert config.crossover_probability == 1.0
        assert config.inversion_probability == 0.05

    def test_run_defaults(self) -> None:
        config = OptimizerConfig()
        assert config.patience == 25
        assert config.time_budget is None
        assert config.random_seed is None
        assert config.workers == 1
        assert config.objective is Objective.WASTE
        assert config.allow_mixed_stock_sizes
        assert config.seed_sorted_individuals
        assert not config.validate_layouts

    def test_strategy_defaults(self) -> None:
        strategy = OptimizerConfig().strategy
        assert strategy == PlacementStrategy()
        assert strategy.rect_choice is OPTIMIZATION["placement"]["rect_choice"]
        assert strategy.algorithm is PackingAlgorithm.GUILLOTINE

    def test_defaults_are_valid(self) -> None:
        config = OptimizerConfig()
        assert config.validate() is config


# =============================================================================
# Validation
# =============================================================================


class TestValidate:
    """Tests for OptimizerConfig.validate."""

    @pytest.mark.parametrize("field,value", [
        ("population_size", 0),
        ("max_generations", -1),
        ("elitism_count", -1),
        ("elitism_count", 51),
        ("tournament_size", 0),
        ("mutation_probability", 1.5),
        ("crossover_probability", -0.1),
        ("inversion_probability", 2),
        ("patience", 0),
        ("time_budget", 0),
        ("workers", 0),
    ])
    def test_invalid_values(self, field, value) -> None:
        config = OptimizerConfig(**{field: value})
        with pytest.raises(ConfigurationError) as excinfo:
            config.validate()
        assert excinfo.value.details["field"] == field

    def test_negative_blade_width(self) -> None:
        config = OptimizerConfig(strategy=PlacementStrategy(blade_width=-1))
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_disabled_limits_are_valid(self) -> None:
        OptimizerConfig(patience=None, time_budget=None, max_generations=0).validate()

    def test_elitism_may_fill_population(self) -> None:
        OptimizerConfig(population_size=4, elitism_count=4).validate()


# =============================================================================
# Building from plain values
# =============================================================================


class TestFromDict:
    """Tests for OptimizerConfig.from_dict."""

    def test_empty(self) -> None:
        assert OptimizerConfig.from_dict({}) == OptimizerConfig()
        assert OptimizerConfig.from_dict(None) == OptimizerConfig()

    def test_values_and_names(self) -> None:
        config = OptimizerConfig.from_dict({
            "population_size": 10,
            "objective": "SHEET_COUNT",
            "rect_choice": "best_short_side_fit",
            "split_rule": "MINIMIZE_AREA",
            "blade_width": 3,
        })
        assert config.population_size == 10
        assert config.objective is Objective.SHEET_COUNT
        assert config.strategy.rect_choice is FreeRectChoice.BEST_SHORT_SIDE_FIT
        assert config.strategy.split_rule is SplitRule.MINIMIZE_AREA
        assert config.strategy.blade_width == 3
        assert config.strategy.merge_policy is MergePolicy.AFTER_EACH_PLACEMENT

    def test_maxrects_algorithm(self) -> None:
        config = OptimizerConfig.from_dict({"algorithm": "MAXRECTS", "rect_choice": "contact_point"})
        assert config.strategy.algorithm is PackingAlgorithm.MAXRECTS
        assert config.strategy.rect_choice is FreeRectChoice.CONTACT_POINT

    def test_nested_strategy(self) -> None:
        config = OptimizerConfig.from_dict({"strategy": {"merge_policy": "on_failure"}})
        assert config.strategy.merge_policy is MergePolicy.ON_FAILURE

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            OptimizerConfig.from_dict({"colour": "red"})
        assert excinfo.value.details["keys"] == ["colour"]

    def test_unknown_strategy_key(self) -> None:
        with pytest.raises(ConfigurationError):
            OptimizerConfig.from_dict({"strategy": {"angle": 45}})

    def test_unknown_enum_value(self) -> None:
        with pytest.raises(ConfigurationError):
            OptimizerConfig.from_dict({"split_rule": "diagonal"})

    def test_with_overrides(self) -> None:
        base = OptimizerConfig(random_seed=1)
        changed = base.with_overrides(workers=4)
        assert changed.workers == 4
        assert changed.random_seed == 1
        assert base.workers == 1


# =============================================================================
# Errors
# =============================================================================


class TestErrors:
    """Tests for error reporting."""

    def test_configuration_error_is_a_value_error(self) -> None:
        assert issubclass(ConfigurationError, ValueError)

    def test_configuration_error_report(self) -> None:
        error = ConfigurationError("Piece too large", {"piece": "P1"})
        data = error.to_dict()
        assert data["error_type"] == "ConfigurationError"
        assert data["error_message"] == "Piece too large"
        assert data["details"] == {"piece": "P1"}
        assert json.loads(error.to_json())["details"] == {"piece": "P1"}
        assert str(error) == "Piece too large"

    def test_layout_validation_error(self) -> None:
        error = LayoutValidationError(["overlap", "out of bounds"])
        assert isinstance(error, RuntimeError)
        assert error.errors == ["overlap", "out of bounds"]
        assert "overlap; out of bounds" in str(error)
