"""
Optimizer facade: the single entry point of the layout engine.

Validates the input, expands piece quantities, runs the genetic algorithm
(once over all stock and once per stock size when several sizes are given)
and returns the best layout found.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field

import numpy as np

from ..cutting.layout_validator import validate_layout
from ..geometry.data_classes import (
    Piece,
    PieceInstance,
    StockSheet,
    expand_pieces,
    merge_equivalent_sheets,
)
from ..packing.placement import Layout
from ..utils.config import OptimizerConfig
from ..utils.exceptions import ConfigurationError, LayoutValidationError
from .fitness_function import FitnessEvaluator, FitnessResult
from .genetic_algorithm import GAResult, GeneticAlgorithm


logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """One GA run over a subset of the stock."""
    label: str
    fitness: float
    stop_reason: str
    generations: int
    evaluations: int
    elapsed: float


@dataclass
class OptimizationResult:
    """Best layout plus statistics about how it was found."""
    layout: Layout
    fitness: FitnessResult
    runs: List[RunSummary] = field(default_factory=list)
    chosen_run: str = ""

    @property
    def evaluations(self) -> int:
        return sum(r.evaluations for r in self.runs)

    def statistics(self) -> Dict[str, Any]:
        return {
            "fitness": self.fitness.fitness,
            "waste_area": self.fitness.waste_area,
            "num_sheets": self.fitness.num_sheets,
            "num_unplaced": self.fitness.num_unplaced,
            "total_cost": self.fitness.total_cost,
            "utilization": self.fitness.utilization,
            "evaluations": self.evaluations,
            "chosen_run": self.chosen_run,
            "runs": [r.__dict__.copy() for r in self.runs],
        }


class LayoutOptimizer:
    """
    Collects pieces and stock, then optimizes their layout.

    Example:
        optimizer = LayoutOptimizer(OptimizerConfig(random_seed=1))
        optimizer.add_stock_sheet(StockSheet(2440, 1220))
        optimizer.add_pieces([Piece(600, 400, "door", quantity=4)])
        layout = optimizer.optimize().layout
    """

    def __init__(self, config: Optional[OptimizerConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or OptimizerConfig()
        self.clock = clock
        self.pieces: List[Piece] = []
        self.stock: List[StockSheet] = []

    def add_piece(self, piece: Piece) -> "LayoutOptimizer":
        self.pieces.append(piece)
        return self

    def add_pieces(self, pieces: Iterable[Piece]) -> "LayoutOptimizer":
        for piece in pieces:
            self.add_piece(piece)
        return self

    def add_stock_sheet(self, sheet: StockSheet) -> "LayoutOptimizer":
        """Add a stock sheet type; equivalent sheets have their quantities summed."""
        self.stock = merge_equivalent_sheets(self.stock + [sheet])
        return self

    def add_stock_sheets(self, sheets: Iterable[StockSheet]) -> "LayoutOptimizer":
        for sheet in sheets:
            self.add_stock_sheet(sheet)
        return self

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> List[PieceInstance]:
        """Check config and input; return the expanded piece instances."""
        self.config.validate()

        if not self.pieces:
            raise ConfigurationError("At least one piece is required")
        if not self.stock:
            raise ConfigurationError("At least one stock sheet is required")

        for piece in self.pieces:
            if piece.width <= 0 or piece.height <= 0:
                raise ConfigurationError(f"Piece {piece.piece_id} must have positive dimensions",
                                         {"piece": repr(piece)})
            if piece.quantity < 1:
                raise ConfigurationError(f"Piece {piece.piece_id} must have a quantity of at least 1",
                                         {"piece": repr(piece)})

        for sheet in self.stock:
            if sheet.width <= 0 or sheet.height <= 0:
                raise ConfigurationError(f"Stock sheet {sheet.sheet_id} must have positive dimensions",
                                         {"sheet": repr(sheet)})
            if sheet.quantity is not None and sheet.quantity < 0:
                raise ConfigurationError(f"Stock sheet {sheet.sheet_id} has a negative quantity",
                                         {"sheet": repr(sheet)})
            if sheet.price < 0:
                raise ConfigurationError(f"Stock sheet {sheet.sheet_id} has a negative price",
                                         {"sheet": repr(sheet)})

        instances = expand_pieces(self.pieces)
        available = [s for s in self.stock if s.quantity != 0]
        for piece in self.pieces:
            sample = PieceInstance(0, piece.width, piece.height, piece.piece_id,
                                   piece.can_rotate, piece.pattern_direction)
            if not any(sheet.can_contain(sample) for sheet in available):
                logger.warning("Piece %r does not fit any stock sheet", piece)
                raise ConfigurationError(
                    f"Piece {piece.piece_id} ({piece.width}x{piece.height}) "
                    f"does not fit any stock sheet",
                    {"piece": repr(piece), "stock": [repr(s) for s in self.stock]},
                )
        return instances

    # -------------------------------------------------------------------------
    # Optimization
    # -------------------------------------------------------------------------

    def stock_groups(self, instances: Sequence[PieceInstance]) -> List[Tuple[str, List[StockSheet]]]:
        """
        Stock subsets to run the GA on.

        All stock together (when mixing is allowed) plus one run per sheet
        size that can hold every piece on its own.
        """
        sizes: List[Tuple[float, float]] = []
        for sheet in self.stock:
            if (sheet.width, sheet.height) not in sizes:
                sizes.append((sheet.width, sheet.height))

        groups: List[Tuple[str, List[StockSheet]]] = []
        if self.config.allow_mixed_stock_sizes:
            groups.append(("mixed", list(self.stock)))
            if len(sizes) == 1:
                return groups

        for width, height in sizes:
            subset = [s for s in self.stock if (s.width, s.height) == (width, height)]
            usable = [s for s in subset if s.quantity != 0]
            if all(any(s.can_contain(p) for s in usable) for p in instances):
                groups.append((f"{width}x{height}", subset))

        if not groups:
            raise ConfigurationError("No single stock size fits every piece and mixed "
                                     "stock sizes are not allowed")
        return groups

    def optimize(self, progress_callback: Optional[Callable[[float], None]] = None) -> OptimizationResult:
        instances = self.validate()
        groups = self.stock_groups(instances)
        reference = FitnessEvaluator(instances, self.stock, self.config.strategy,
                                     self.config.objective)

        seeds = np.random.SeedSequence(self.config.random_seed).spawn(len(groups))
        best: Optional[Tuple[Tuple[Any, int], Layout, FitnessResult, str]] = None
        runs: List[RunSummary] = []

        # One budget covers every run; the first run always completes.
        deadline = None
        if self.config.time_budget is not None:
            deadline = self.clock() + self.config.time_budget

        for run_index, (label, stock) in enumerate(groups):
            if runs and deadline is not None and self.clock() >= deadline:
                logger.info("Time budget spent, skipping %d of %d runs",
                            len(groups) - run_index, len(groups))
                break

            evaluator = FitnessEvaluator(instances, stock, self.config.strategy,
                                         self.config.objective)
            callback = None
            if progress_callback is not None:
                callback = _scaled_progress(progress_callback, run_index, len(groups))

            ga = GeneticAlgorithm(evaluator, self.config, progress_callback=callback,
                                  clock=self.clock, seed_sequence=seeds[run_index],
                                  deadline=deadline)
            outcome: GAResult = ga.run()

            layout = outcome.best.layout
            result = reference.score(layout)
            runs.append(RunSummary(label=label,
                                   fitness=result.fitness,
                                   stop_reason=outcome.stop_reason.value,
                                   generations=outcome.generations,
                                   evaluations=outcome.evaluations,
                                   elapsed=outcome.elapsed))

            key = (result.ranking, result.num_sheets)
            if best is None or key < best[0]:
                best = (key, layout, result, label)

        if progress_callback is not None and len(runs) < len(groups):
            progress_callback(1.0)

        _, layout, result, label = best
        logger.info("Best layout from run '%s': %r", label, layout)

        if self.config.validate_layouts:
            check = validate_layout(layout, instances)
            if not check.is_valid:
                raise LayoutValidationError(check.errors)

        return OptimizationResult(layout=layout, fitness=result, runs=runs, chosen_run=label)


def _scaled_progress(callback: Callable[[float], None], run_index: int,
                     num_runs: int) -> Callable[[float], None]:
    def report(progress: float):
        callback((run_index + progress) / num_runs)
    return report


def optimize(pieces: Sequence[Piece],
             stock_sheets: Sequence[StockSheet],
             config: Optional[OptimizerConfig] = None,
             progress_callback: Optional[Callable[[float], None]] = None) -> Layout:
    """
    Optimize the layout of pieces on stock sheets.

    Args:
        pieces: Pieces to cut (quantities are expanded)
        stock_sheets: Available stock sheet types
        config: Run configuration (defaults to OptimizerConfig())
        progress_callback: Called with overall progress in [0, 1]

    Returns:
        Best Layout found; check Layout.is_feasible for unplaced pieces

    Raises:
        ConfigurationError: If the configuration is invalid or a piece fits no stock sheet
    """
    optimizer = LayoutOptimizer(config)
    optimizer.add_pieces(pieces)
    optimizer.add_stock_sheets(stock_sheets)
    return optimizer.optimize(progress_callback).layout
