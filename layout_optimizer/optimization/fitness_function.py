"""
Fitness Function for Genetic Algorithm Optimization.

Decodes a genome (piece ordering + rotation bits) into a Layout with the
placement heuristic and scores it. Lower fitness = better solution.

Fitness formula:
    fitness = unplaced * unplaced_penalty + objective_term

Where objective_term is, by objective:
    WASTE:        waste_area
    SHEET_COUNT:  num_sheets * area_bound + waste_area
    COST:         total_cost * area_bound + waste_area

area_bound exceeds the largest waste any feasible layout can have, and
unplaced_penalty exceeds the largest objective_term any feasible layout can
have. The scalar is for reporting; individuals are ranked on
FitnessResult.ranking, the tuple (unplaced, objective value, waste).
"""

from typing import List, Sequence, Tuple
from dataclasses import dataclass

from ..geometry.data_classes import PieceInstance, StockSheet
from ..packing.placement import DEFAULT_STRATEGY, Layout, PlacementStrategy, build_layout
from ..utils.config import Objective


# =============================================================================
# PENALTY WEIGHTS
# =============================================================================

@dataclass(frozen=True)
class PenaltyWeights:
    """
    Scale factors derived from the problem instance.

    Attributes:
        area_bound: Strict upper bound of the waste of a feasible layout
        unplaced: Penalty per unplaced piece
    """
    area_bound: float
    unplaced: float

    @classmethod
    def for_problem(cls, pieces: Sequence[PieceInstance],
                    stock: Sequence[StockSheet],
                    objective: Objective = Objective.WASTE) -> "PenaltyWeights":
        # Every opened sheet holds at least one piece, so a feasible layout
        # never uses more sheets than there are pieces.
        n = max(len(pieces), 1)
        max_area = max((s.area for s in stock), default=0)
        area_bound = n * max_area + 1

        if objective is Objective.SHEET_COUNT:
            term_bound = n * area_bound + area_bound
        elif objective is Objective.COST:
            max_price = max((s.price for s in stock), default=0)
            term_bound = n * max_price * area_bound + area_bound
        else:
            term_bound = area_bound

        return cls(area_bound=area_bound, unplaced=term_bound + 1)


# =============================================================================
# FITNESS EVALUATION RESULT
# =============================================================================

@dataclass(frozen=True)
class FitnessResult:
    """
    Detailed fitness evaluation result.

    Attributes:
        fitness: Final fitness score (lower = better)
        waste_area: Sheet area not covered by pieces
        num_sheets: Sheets used
        num_unplaced: Pieces that did not fit the available stock
        total_cost: Summed price of the used sheets
        utilization: Percentage of used sheet area covered by pieces
        objective_value: Quantity the objective minimizes (waste, sheets or cost)
    """
    fitness: float
    waste_area: float
    num_sheets: int
    num_unplaced: int
    total_cost: float
    utilization: float
    objective_value: float = 0.0

    @property
    def valid(self) -> bool:
        return self.num_unplaced == 0

    @property
    def ranking(self) -> Tuple[int, float, float]:
        """Sort key: fewer unplaced pieces, then objective value, then waste."""
        return (self.num_unplaced, self.objective_value, self.waste_area)

    def __repr__(self):
        return (f"FitnessResult(fitness={self.fitness:.2f}, "
                f"sheets={self.num_sheets}, waste={self.waste_area}, "
                f"unplaced={self.num_unplaced}, valid={self.valid})")


# =============================================================================
# MAIN FITNESS FUNCTION
# =============================================================================

class FitnessEvaluator:
    """
    Fitness function evaluator for GA optimization.

    Holds only immutable problem data, so it can be shipped to worker
    processes and called concurrently.
    """

    def __init__(self,
                 pieces: Sequence[PieceInstance],
                 stock: Sequence[StockSheet],
                 strategy: PlacementStrategy = DEFAULT_STRATEGY,
                 objective: Objective = Objective.WASTE):
        """
        Initialize fitness evaluator.

        Args:
            pieces: Piece instances; genomes index into this list
            stock: Available stock sheet types
            strategy: Placement rules used to decode genomes
            objective: What the fitness minimizes
        """
        self.pieces = list(pieces)
        self.stock = list(stock)
        self.strategy = strategy
        self.objective = objective
        self.weights = PenaltyWeights.for_problem(self.pieces, self.stock, objective)

    @property
    def num_pieces(self) -> int:
        return len(self.pieces)

    def rotatable(self) -> List[bool]:
        """Which genes carry a meaningful rotation bit."""
        return [p.can_rotate for p in self.pieces]

    def decode(self, order: Sequence[int], rotations: Sequence[bool]) -> List[Tuple[PieceInstance, bool]]:
        """Decode a genome into (piece, prefer_rotated) placement requests."""
        return [(self.pieces[i], bool(rotations[i])) for i in order]

    def build(self, order: Sequence[int], rotations: Sequence[bool]) -> Layout:
        return build_layout(self.decode(order, rotations), self.stock, self.strategy)

    def score(self, layout: Layout) -> FitnessResult:
        """Score a finished layout."""
        waste = layout.waste_area
        if self.objective is Objective.SHEET_COUNT:
            value = layout.num_sheets
            term = value * self.weights.area_bound + waste
        elif self.objective is Objective.COST:
            value = layout.total_cost
            term = value * self.weights.area_bound + waste
        else:
            value = waste
            term = waste

        num_unplaced = len(layout.unplaced)
        return FitnessResult(
            fitness=num_unplaced * self.weights.unplaced + term,
            waste_area=waste,
            num_sheets=layout.num_sheets,
            num_unplaced=num_unplaced,
            total_cost=layout.total_cost,
            utilization=layout.utilization,
            objective_value=value,
        )

    def evaluate(self, order: Sequence[int], rotations: Sequence[bool]) -> Tuple[Layout, FitnessResult]:
        """Decode and score a genome."""
        layout = self.build(order, rotations)
        return layout, self.score(layout)


def evaluate_genome(evaluator: FitnessEvaluator,
                    order: Sequence[int],
                    rotations: Sequence[bool]) -> Tuple[Layout, FitnessResult]:
    """Module-level entry point so worker processes can pickle the call."""
    return evaluator.evaluate(order, rotations)
