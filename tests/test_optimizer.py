"""Tests for the optimizer facade.

Tests cover:
- The reference examples (exact fit, oversized piece, row of squares)
- Input validation and configuration errors
- Geometric soundness and conservation of every returned layout, guillotine
  and nested
- Determinism under a fixed seed, in-process and with worker processes
- Stock handling: quantities, equivalent sheets, per-size runs
- Blade width and grain end to end
- One time budget shared by every run
"""

import itertools
import time
from collections import Counter

import pytest

from layout_optimizer import (
    ConfigurationError,
    LayoutOptimizer,
    OptimizerConfig,
    PatternDirection,
    Piece,
    StockSheet,
    optimize,
    validate_layout,
)
from layout_optimizer.geometry.data_classes import expand_pieces
from layout_optimizer.packing.free_space import FreeRectChoice
from layout_optimizer.packing.placement import PackingAlgorithm, PlacementStrategy


# =============================================================================
# Reference examples
# =============================================================================


class TestExamples:
    """End-to-end examples with known answers."""

    def test_exact_fit_packs_without_waste(self, exact_fit_pieces, square_sheet, fast_config) -> None:
        layout = optimize(exact_fit_pieces, [square_sheet], fast_config)
        assert layout.num_sheets == 1
        assert layout.waste_area == 0
        assert layout.is_feasible

    def test_oversized_piece_fails_before_any_generation(self) -> None:
        progress = []
        with pytest.raises(ConfigurationError) as excinfo:
            optimize([Piece(60, 60, "big")], [StockSheet(50, 50)],
                     progress_callback=progress.append)
        assert progress == []
        assert "big" in excinfo.value.message
        assert excinfo.value.to_dict()["error_type"] == "ConfigurationError"

    @pytest.mark.parametrize("population_size,max_generations", [
        (1, 0), (2, 1), (5, 3), (20, 10),
    ])
    def test_row_of_squares_fills_one_strip(self, population_size, max_generations) -> None:
        config = OptimizerConfig(population_size=population_size, max_generations=max_generations,
                                 elitism_count=0, random_seed=3)
        layout = optimize([Piece(10, 10, "sq", quantity=10)], [StockSheet(100, 10)], config)
        assert layout.num_sheets == 1
        assert layout.waste_area == 0

    def test_row_of_squares_without_sorted_seeds(self) -> None:
        config = OptimizerConfig(population_size=4, max_generations=2,
                                 seed_sorted_individuals=False, random_seed=99)
        layout = optimize([Piece(10, 10, quantity=10)], [StockSheet(100, 10)], config)
        assert layout.num_sheets == 1
        assert layout.waste_area == 0


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    """Tests for input and configuration validation."""

    def test_no_pieces(self, square_sheet) -> None:
        with pytest.raises(ConfigurationError):
            optimize([], [square_sheet])

    def test_no_stock(self) -> None:
        with pytest.raises(ConfigurationError):
            optimize([Piece(10, 10)], [])

    def test_stock_exhausted_up_front(self) -> None:
        with pytest.raises(ConfigurationError):
            optimize([Piece(10, 10)], [StockSheet(100, 100, quantity=0)])

    @pytest.mark.parametrize("piece", [
        Piece(0, 10),
        Piece(10, -1),
        Piece(10, 10, quantity=0),
    ])
    def test_bad_pieces(self, piece, square_sheet) -> None:
        with pytest.raises(ConfigurationError):
            optimize([piece], [square_sheet])

    @pytest.mark.parametrize("sheet", [
        StockSheet(0, 100),
        StockSheet(100, 100, quantity=-1),
        StockSheet(100, 100, price=-5),
    ])
    def test_bad_stock(self, sheet) -> None:
        with pytest.raises(ConfigurationError):
            optimize([Piece(10, 10)], [sheet])

    def test_invalid_config(self, square_sheet) -> None:
        with pytest.raises(ConfigurationError):
            optimize([Piece(10, 10)], [square_sheet], OptimizerConfig(population_size=0))

    def test_grain_that_cannot_be_matched(self) -> None:
        sheet = StockSheet(100, 100, pattern_direction=PatternDirection.PARALLEL_TO_WIDTH)
        piece = Piece(10, 20, can_rotate=False, pattern_direction=PatternDirection.PARALLEL_TO_LENGTH)
        with pytest.raises(ConfigurationError):
            optimize([piece], [sheet])

    def test_fixed_piece_needs_upright_fit(self) -> None:
        with pytest.raises(ConfigurationError):
            optimize([Piece(100, 50, can_rotate=False)], [StockSheet(50, 100)])


# =============================================================================
# Invariants
# =============================================================================


class TestInvariants:
    """Soundness, conservation and determinism."""

    def test_layout_is_sound_and_conserves_pieces(self, mixed_pieces, fast_config) -> None:
        stock = [StockSheet(100, 100, "board")]
        layout = optimize(mixed_pieces, stock, fast_config)

        result = validate_layout(layout, expand_pieces(mixed_pieces))
        assert result.is_valid, result.errors

        placed_ids = Counter(p.piece_id for p in layout.placed_pieces())
        assert placed_ids == Counter({"door": 3, "side": 2, "shelf": 2, "panel": 1})

    @pytest.mark.parametrize("rect_choice", [FreeRectChoice.BOTTOM_LEFT,
                                             FreeRectChoice.CONTACT_POINT,
                                             FreeRectChoice.BEST_AREA_FIT])
    def test_maxrects_layout_is_sound(self, mixed_pieces, fast_config, rect_choice) -> None:
        strategy = PlacementStrategy(algorithm=PackingAlgorithm.MAXRECTS,
                                     rect_choice=rect_choice, blade_width=1)
        config = fast_config.with_overrides(strategy=strategy, validate_layouts=True)
        layout = optimize(mixed_pieces, [StockSheet(100, 100, "board")], config)

        result = validate_layout(layout, expand_pieces(mixed_pieces))
        assert result.is_valid, result.errors
        assert layout.is_feasible

    def test_validate_layouts_option(self, mixed_pieces, fast_config) -> None:
        config = fast_config.with_overrides(validate_layouts=True)
        layout = optimize(mixed_pieces, [StockSheet(100, 100)], config)
        assert layout.is_feasible

    def test_same_seed_same_layout(self, mixed_pieces, fast_config) -> None:
        stock = [StockSheet(100, 100)]
        first = optimize(mixed_pieces, stock, fast_config)
        second = optimize(mixed_pieces, stock, fast_config)
        assert first.to_dict() == second.to_dict()

    def test_workers_do_not_change_the_result(self, mixed_pieces, fast_config) -> None:
        stock = [StockSheet(100, 100)]
        serial = optimize(mixed_pieces, stock, fast_config)
        parallel = optimize(mixed_pieces, stock, fast_config.with_overrides(workers=2))
        assert serial.to_dict() == parallel.to_dict()

    def test_infeasible_layout_is_returned(self, fast_config) -> None:
        layout = optimize([Piece(100, 100, "sq", quantity=3)],
                          [StockSheet(100, 100, quantity=1)], fast_config)
        assert not layout.is_feasible
        assert len(layout.unplaced) == 2
        assert layout.num_sheets == 1


# =============================================================================
# LayoutOptimizer
# =============================================================================


class TestLayoutOptimizer:
    """Tests for the LayoutOptimizer builder and its result."""

    def test_equivalent_stock_is_merged(self) -> None:
        optimizer = LayoutOptimizer()
        optimizer.add_stock_sheet(StockSheet(100, 100, "a", quantity=1))
        optimizer.add_stock_sheet(StockSheet(100, 100, "b", quantity=2))
        optimizer.add_stock_sheet(StockSheet(100, 50, "c"))
        assert [(s.sheet_id, s.quantity) for s in optimizer.stock] == [("a", 3), ("c", None)]

    def test_merged_quantities_are_used(self, fast_config) -> None:
        optimizer = LayoutOptimizer(fast_config)
        optimizer.add_pieces([Piece(100, 100, "sq", quantity=2)])
        optimizer.add_stock_sheets([StockSheet(100, 100, quantity=1), StockSheet(100, 100, quantity=1)])
        layout = optimizer.optimize().layout
        assert layout.is_feasible
        assert layout.num_sheets == 2

    def test_result_statistics(self, mixed_pieces, fast_config) -> None:
        optimizer = LayoutOptimizer(fast_config).add_pieces(mixed_pieces)
        optimizer.add_stock_sheet(StockSheet(100, 100))
        result = optimizer.optimize()

        stats = result.statistics()
        assert stats["num_sheets"] == result.layout.num_sheets
        assert stats["waste_area"] == result.layout.waste_area
        assert stats["evaluations"] > 0
        assert stats["chosen_run"] == "mixed"
        assert len(stats["runs"]) == 1

    def test_progress_is_scaled_across_runs(self, fast_config) -> None:
        progress = []
        optimizer = LayoutOptimizer(fast_config).add_pieces([Piece(30, 40, "p", quantity=4)])
        optimizer.add_stock_sheets([StockSheet(100, 100), StockSheet(80, 120)])
        result = optimizer.optimize(progress_callback=progress.append)

        assert len(result.runs) == 3
        assert progress == sorted(progress)
        assert progress[-1] == pytest.approx(1.0)
        assert all(0.0 <= p <= 1.0 + 1e-9 for p in progress)


# =============================================================================
# Stock sizes
# =============================================================================


class TestStockSizes:
    """Tests for mixed and single-size runs."""

    def test_groups_for_several_sizes(self) -> None:
        optimizer = LayoutOptimizer().add_pieces([Piece(40, 40)])
        optimizer.add_stock_sheets([StockSheet(100, 100), StockSheet(50, 50)])
        groups = optimizer.stock_groups(expand_pieces(optimizer.pieces))
        assert [label for label, _ in groups] == ["mixed", "100x100", "50x50"]

    def test_sizes_that_cannot_hold_every_piece_are_skipped(self) -> None:
        optimizer = LayoutOptimizer().add_pieces([Piece(40, 40), Piece(80, 80)])
        optimizer.add_stock_sheets([StockSheet(100, 100), StockSheet(50, 50)])
        groups = optimizer.stock_groups(expand_pieces(optimizer.pieces))
        assert [label for label, _ in groups] == ["mixed", "100x100"]

    def test_single_size_only(self) -> None:
        config = OptimizerConfig(allow_mixed_stock_sizes=False)
        optimizer = LayoutOptimizer(config).add_pieces([Piece(40, 40)])
        optimizer.add_stock_sheets([StockSheet(100, 100), StockSheet(50, 50)])
        groups = optimizer.stock_groups(expand_pieces(optimizer.pieces))
        assert [label for label, _ in groups] == ["100x100", "50x50"]

    def test_single_size_impossible(self) -> None:
        config = OptimizerConfig(allow_mixed_stock_sizes=False)
        pieces = [Piece(90, 90, "square"), Piece(30, 150, "strip", can_rotate=False)]
        stock = [StockSheet(100, 100), StockSheet(50, 200)]
        with pytest.raises(ConfigurationError):
            optimize(pieces, stock, config)

    def test_mixed_sizes_when_needed(self, fast_config) -> None:
        pieces = [Piece(90, 90, "square"), Piece(30, 150, "strip", can_rotate=False)]
        stock = [StockSheet(100, 100, "sq"), StockSheet(50, 200, "long")]
        layout = optimize(pieces, stock, fast_config)
        assert layout.is_feasible
        assert sorted(s.sheet.sheet_id for s in layout.sheets) == ["long", "sq"]

    def test_smaller_size_wins_when_it_wastes_less(self, fast_config) -> None:
        pieces = [Piece(50, 50, "tile", quantity=4)]
        stock = [StockSheet(300, 300, "huge", priority=0), StockSheet(100, 100, "exact", priority=1)]
        layout = optimize(pieces, stock, fast_config)
        assert layout.waste_area == 0
        assert [s.sheet.sheet_id for s in layout.sheets] == ["exact"]


# =============================================================================
# Time budget
# =============================================================================


@pytest.fixture
def three_sizes():
    return [StockSheet(100, 100, "square"), StockSheet(120, 90, "wide"),
            StockSheet(150, 80, "long")]


class TestTimeBudget:
    """The time budget covers the whole optimization, not each run."""

    def test_runs_after_the_deadline_are_skipped(self, mixed_pieces, three_sizes,
                                                 fast_config) -> None:
        config = fast_config.with_overrides(time_budget=5, max_generations=1000)
        optimizer = LayoutOptimizer(config, clock=itertools.count(0, 10).__next__)
        optimizer.add_pieces(mixed_pieces).add_stock_sheets(three_sizes)
        progress = []

        result = optimizer.optimize(progress_callback=progress.append)

        assert len(optimizer.stock_groups(expand_pieces(mixed_pieces))) == 4
        assert [r.label for r in result.runs] == ["mixed"]
        assert result.runs[0].stop_reason == "time_budget"
        assert result.runs[0].generations == 1
        assert result.layout.is_feasible
        assert progress[-1] == 1.0

    def test_total_elapsed_stays_near_budget(self, three_sizes, fast_config) -> None:
        config = fast_config.with_overrides(time_budget=0.5, max_generations=100000)
        pieces = [Piece(17, 23, "a", quantity=10), Piece(31, 12, "b", quantity=10),
                  Piece(22, 22, "c", quantity=10)]

        started = time.monotonic()
        optimizer = LayoutOptimizer(config).add_pieces(pieces).add_stock_sheets(three_sizes)
        result = optimizer.optimize()
        elapsed = time.monotonic() - started

        assert elapsed < 1.5
        assert sum(r.elapsed for r in result.runs) < 1.5
        assert all(r.stop_reason == "time_budget" for r in result.runs)

    def test_without_budget_every_run_completes(self, mixed_pieces, three_sizes,
                                                fast_config) -> None:
        optimizer = LayoutOptimizer(fast_config.with_overrides(max_generations=2))
        result = optimizer.add_pieces(mixed_pieces).add_stock_sheets(three_sizes).optimize()
        assert [r.label for r in result.runs] == ["mixed", "100x100", "120x90", "150x80"]


# =============================================================================
# Cutting options
# =============================================================================


class TestCuttingOptions:
    """Blade width and grain end to end."""

    def test_blade_width_separates_pieces(self, fast_config) -> None:
        config = fast_config.with_overrides(strategy=PlacementStrategy(blade_width=2))
        layout = optimize([Piece(49, 100, "half", can_rotate=False, quantity=2)],
                          [StockSheet(100, 100)], config)
        assert layout.num_sheets == 1
        xs = sorted(p.x for p in layout.placed_pieces())
        assert xs == [0, 51]

    def test_blade_width_can_force_another_sheet(self, fast_config) -> None:
        config = fast_config.with_overrides(strategy=PlacementStrategy(blade_width=2))
        layout = optimize([Piece(50, 100, "half", can_rotate=False, quantity=2)],
                          [StockSheet(100, 100)], config)
        assert layout.num_sheets == 2

    def test_grain_forces_rotation(self, fast_config) -> None:
        sheet = StockSheet(100, 40, pattern_direction=PatternDirection.PARALLEL_TO_WIDTH)
        piece = Piece(40, 100, "veneer", pattern_direction=PatternDirection.PARALLEL_TO_LENGTH)
        layout = optimize([piece], [sheet], fast_config)
        placed = layout.placed_pieces()[0]
        assert placed.rotated
        assert placed.pattern_direction is PatternDirection.PARALLEL_TO_WIDTH
        assert layout.waste_area == 0
